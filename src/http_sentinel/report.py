from __future__ import annotations

from typing import Any, Dict

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

SEVERITY_STYLES = {"CRITICAL": "red bold", "HIGH": "red", "MEDIUM": "yellow", "LOW": "blue"}


def print_report(report: Dict[str, Any], console: Console) -> None:
    summary = report["summary"]
    stats = report["stats"]
    attack_style = "red" if summary["attackCount"] else "green"

    console.print(Panel.fit(
        f"Total Events: [cyan]{summary['total']:,}[/]\n"
        f"Attacks: [{attack_style}]{summary['attackCount']:,}[/]\n"
        f"Successful Attacks: [{attack_style}]{summary['successfulCount']:,}[/]\n"
        f"Blocked: [cyan]{report['blocked']:,}[/]\n"
        f"Success Rate: [cyan]{report['successRate']}%[/]\n"
        f"Unique IPs: [cyan]{summary['uniqueIPs']:,}[/]",
        title="HTTP Sentinel Summary",
        border_style="cyan",
    ))

    console.print("\nEVENTS BY SEVERITY", style="bold")
    for severity, count in stats["severityCount"].items():
        console.print(f"  {severity}: [{SEVERITY_STYLES.get(severity, 'white')}]{count}[/]")

    if stats["attacksByType"]:
        table = Table(title="Attacks by Type", box=box.ROUNDED)
        table.add_column("Type", style="cyan")
        table.add_column("Count", style="red")
        for attack_type, count in sorted(stats["attacksByType"].items(), key=lambda item: -item[1]):
            table.add_row(escape(attack_type), str(count))
        console.print(table)

    if report["topIPs"]:
        table = Table(title="Top Attacking IPs", box=box.ROUNDED)
        table.add_column("IP Address", style="red")
        table.add_column("Attacks", style="yellow")
        for item in report["topIPs"]:
            table.add_row(escape(item["ip"] or "-"), str(item["attacks"]))
        console.print(table)

    if report["topPayloads"]:
        table = Table(title="Top Payloads", box=box.ROUNDED)
        table.add_column("Payload", style="white", overflow="fold")
        table.add_column("Type", style="cyan")
        table.add_column("Count", style="yellow")
        for item in report["topPayloads"]:
            table.add_row(escape(item["payload"]), escape(item["type"]), str(item["count"]))
        console.print(table)

    if stats["timeBins"]:
        table = Table(title="Events per Hour", box=box.SIMPLE)
        table.add_column("Hour (UTC)", style="cyan")
        table.add_column("Events", style="white")
        for label, count in stats["timeBins"].items():
            table.add_row(label, str(count))
        console.print(table)
    else:
        console.print("\nNo events recorded.", style="yellow")
