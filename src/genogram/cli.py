"""CLI interface for the genogram engine."""

import json
from datetime import UTC, datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="genogram",
    help="Genogram graph and support-network analytics",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for stderr output"),
):
    """Load .env settings and set up logging."""
    from dotenv import load_dotenv

    from .logging import configure_logging

    load_dotenv()
    configure_logging(log_level)


def _parse_now(value: str | None) -> datetime:
    from .contacts import parse_contact_date

    if not value:
        return datetime.now(UTC)
    parsed = parse_contact_date(value)
    if parsed is None:
        console.print(f"[red]Error: Invalid --now timestamp: {value}[/red]")
        raise typer.Exit(1)
    return parsed


def _load(file_path: Path):
    from .exceptions import DocumentError
    from .export.json_export import read_document

    if not file_path.exists():
        console.print(f"[red]Error: File not found: {file_path}[/red]")
        raise typer.Exit(1)
    try:
        return read_document(file_path)
    except DocumentError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _days(value: int | None) -> str:
    return "never" if value is None else str(value)


def _severity_style(severity: str) -> str:
    return {"high": "red", "medium": "yellow"}.get(severity, "dim")


@app.command()
def child(
    file_path: Path = typer.Argument(..., help="Path to a genogram JSON document"),
    child_id: str = typer.Argument(..., help="Id of the child"),
    now: str = typer.Option(None, "--now", help="Reference time (ISO 8601), defaults to now"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """Show support-network analytics for one child."""
    from .analytics import compute_child_analytics

    snapshot = _load(file_path)
    analytics = compute_child_analytics(snapshot, child_id, _parse_now(now))
    if analytics is None:
        console.print(f"[red]Error: No person with id {child_id}[/red]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(analytics.to_dict(), indent=2, default=str))
        return

    console.print(
        Panel(
            f"[bold]{analytics.network_health_score}[/bold] / 100 - {analytics.network_health_description}",
            title=f"Network health: {analytics.child.name or child_id}",
        )
    )

    table = Table(title="Network Summary")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Members", str(analytics.total_members))
    table.add_row("Active (30 days)", f"{analytics.active_members_count} ({analytics.active_percentage}%)")
    table.add_row("Contacts (30 days)", str(analytics.total_contacts_last_30_days))
    table.add_row("Avg days to first contact", _days(analytics.avg_days_to_first_contact))
    table.add_row("Days since child contact", _days(analytics.child_days_since_contact))
    console.print(table)

    if analytics.member_stats:
        members = Table(title="Members")
        members.add_column("Name")
        members.add_column("Role")
        members.add_column("Days Since Contact")
        members.add_column("Active")
        for stat in analytics.member_stats:
            members.add_row(
                stat.person.name,
                stat.person.role or "-",
                _days(stat.days_since_contact),
                "yes" if stat.is_active else "no",
            )
        console.print(members)

    if analytics.flags:
        console.print("\n[bold]Flags:[/bold]")
        for flag in analytics.flags:
            style = _severity_style(flag.severity.value)
            console.print(f"  [{style}]{flag.severity.value.upper()}[/{style}] {flag.message}")


@app.command()
def caseload(
    file_path: Path = typer.Argument(..., help="Path to a genogram JSON document"),
    now: str = typer.Option(None, "--now", help="Reference time (ISO 8601), defaults to now"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
):
    """Summarize every child on the caseload and rank who needs attention."""
    from .analytics import compute_caseload_analytics

    snapshot = _load(file_path)
    result = compute_caseload_analytics(snapshot, _parse_now(now))

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    if result.total_children == 0:
        console.print("[yellow]No children found in this genogram[/yellow]")
        return

    table = Table(title="Caseload")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Children", str(result.total_children))
    table.add_row("Recent contact (30 days)", str(result.with_recent_contact))
    table.add_row("No recent contact", str(result.without_recent_contact))
    table.add_row("Average network health", str(result.average_network_health))
    table.add_row("Average contacts (30 days)", str(result.average_contacts_last_30))
    table.add_row("Needs placement", str(result.needs_placement_count))
    table.add_row("Without placement options", str(result.without_placement_options))
    console.print(table)

    if result.priority_children:
        priority = Table(title="Priority Children")
        priority.add_column("Name")
        priority.add_column("Score")
        priority.add_column("Health")
        priority.add_column("Days Since Contact")
        for entry in result.priority_children:
            priority.add_row(
                entry.summary.name,
                str(entry.priority_score),
                str(entry.summary.network_health_score),
                _days(entry.summary.child_days_since_contact),
            )
        console.print(priority)

    if result.flag_trends:
        trends = Table(title="Flag Trends")
        trends.add_column("Flag")
        trends.add_column("Children")
        trends.add_column("Severity Score")
        for trend in result.flag_trends:
            trends.add_row(trend.message, str(trend.count), str(trend.severity_score))
        console.print(trends)


@app.command()
def households(
    file_path: Path = typer.Argument(..., help="Path to a genogram JSON document"),
):
    """List households and the people standing inside them."""
    snapshot = _load(file_path)

    if not snapshot.households:
        console.print("[yellow]No households in this genogram[/yellow]")
        return

    table = Table(title="Households")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Points")
    table.add_column("Members")
    for household in snapshot.households.values():
        names = [
            snapshot.people[pid].name or pid
            for pid in household.members
            if pid in snapshot.people
        ]
        table.add_row(household.id, household.name, str(len(household.points)), ", ".join(names) or "-")
    console.print(table)


@app.command()
def stats(
    file_path: Path = typer.Argument(..., help="Path to a genogram JSON document"),
):
    """Show entity counts for a genogram document."""
    snapshot = _load(file_path)
    partnerships = sum(1 for _ in snapshot.partnerships())

    table = Table(title="Genogram Statistics")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("People", str(len(snapshot.people)))
    table.add_row("Network members", str(sum(1 for p in snapshot.people.values() if p.network_member)))
    table.add_row("Partnerships", str(partnerships))
    table.add_row("Child links", str(len(snapshot.relationships) - partnerships))
    table.add_row("Households", str(len(snapshot.households)))
    table.add_row("Placements", str(len(snapshot.placements)))
    table.add_row("Text boxes", str(len(snapshot.text_boxes)))
    table.add_row("Tags", str(len(snapshot.tag_definitions)))
    console.print(table)


if __name__ == "__main__":
    app()
