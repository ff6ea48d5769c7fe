"""HTTP Sentinel: signature-based HTTP attack classification with an in-memory event store."""

from .api import SentinelAPI
from .engine import SignatureClassifier, classify
from .errors import InternalError, InvalidInput, NotFound
from .models import EventInput, HttpEventRecord, Verdict
from .store import EventStore

__all__ = [
    "SentinelAPI",
    "SignatureClassifier",
    "classify",
    "EventStore",
    "EventInput",
    "HttpEventRecord",
    "Verdict",
    "NotFound",
    "InvalidInput",
    "InternalError",
]
