"""Console Logs CLI - wrap commands and query their captured output."""

import typer
from rich.console import Console
from rich.table import Table

from console_logs.core.config import configure_logging
from console_logs.core.database import create_tables
from console_logs.core.errors import StorageError
from console_logs.services import CommandRunner
from console_logs.tools import call_tool

app = typer.Typer(help="Console Logs CLI")

console = Console()
err_console = Console(stderr=True)

LEVEL_STYLES = {
    "error": "red",
    "warn": "yellow",
    "info": "white",
    "debug": "dim",
}

STATUS_STYLES = {
    "running": "cyan",
    "completed": "green",
    "failed": "red",
}


@app.callback()
def main():
    """Initialize logging and the log store before any command."""
    configure_logging()
    try:
        create_tables()
    except StorageError as e:
        err_console.print(f"[red]✗[/red] Could not open log store: {e}")
        raise typer.Exit(1) from e


def run_tool(name: str, **arguments):
    """Call a tool, exiting non-zero with its message on error."""
    result = call_tool(name, arguments)
    if result.is_error:
        err_console.print(f"[red]✗[/red] {result.content}")
        raise typer.Exit(1)
    return result.content


def print_entries(entries: list[dict], title: str) -> None:
    if not entries:
        console.print("[yellow]No log entries found[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("Process", style="cyan")
    table.add_column("Level")
    table.add_column("Message", style="white")

    for entry in entries:
        style = LEVEL_STYLES.get(entry["level"], "white")
        table.add_row(
            entry["timestamp"][:19].replace("T", " "),
            entry["process_name"],
            f"[{style}]{entry['level']}[/{style}]",
            entry["message"],
        )

    console.print(table)


@app.command(
    "run",
    context_settings={"allow_interspersed_args": False, "ignore_unknown_options": True},
)
def run_command(
    name: str = typer.Argument(..., help="Name to record the process under"),
    command: list[str] = typer.Argument(..., help="Command and its arguments"),
    shell: bool = typer.Option(False, "--shell", help="Run the command through a shell"),
):
    """Run a command, capturing its output into the log store."""
    runner = CommandRunner(name, command, use_shell=shell)
    raise typer.Exit(runner.run())


@app.command("search")
def search(
    query: str = typer.Argument(..., help="Search query (FTS5 syntax)"),
    process: str = typer.Option(None, "--process", "-p", help="Filter by process name"),
    level: str = typer.Option(None, "--level", "-l", help="Filter by log level"),
    since: str = typer.Option(None, "--since", help="Only logs after this timestamp"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum number of results"),
):
    """Search captured logs."""
    entries = run_tool(
        "search_logs", query=query, process=process, level=level, since=since, limit=limit
    )
    print_entries(entries, f"Results for {query!r} ({len(entries)})")


@app.command("errors")
def errors(
    hours: float = typer.Option(1, "--hours", help="Number of hours to look back"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of results"),
    process: str = typer.Option(None, "--process", "-p", help="Filter by process name"),
):
    """Show recent errors."""
    entries = run_tool("get_recent_errors", hours=hours, limit=limit, process=process)
    print_entries(entries, f"Errors in the last {hours:g}h")


@app.command("ps")
def list_processes(
    active: bool = typer.Option(False, "--active", help="Only running processes"),
):
    """List captured processes."""
    processes = run_tool("list_processes", active_only=active)

    if not processes:
        console.print("[yellow]No processes found[/yellow]")
        return

    table = Table(title=f"Processes ({len(processes)})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Exit", justify="right")
    table.add_column("Started", style="dim")
    table.add_column("Command", style="white")

    for process in processes:
        style = STATUS_STYLES.get(process["status"], "white")
        command = process["command"]
        table.add_row(
            str(process["id"]),
            process["name"],
            f"[{style}]{process['status']}[/{style}]",
            "" if process["exit_code"] is None else str(process["exit_code"]),
            process["start_time"][:19].replace("T", " "),
            command[:50] + "..." if len(command) > 50 else command,
        )

    console.print(table)


@app.command("tail")
def tail(
    name: str = typer.Argument(..., help="Process name"),
    lines: int = typer.Option(20, "--lines", "-n", help="Number of lines to show"),
    level: str = typer.Option(None, "--level", "-l", help="Filter by log level"),
):
    """Show the latest output of a process, oldest line first."""
    entries = run_tool("tail_process_logs", process=name, lines=lines, level=level)

    if not entries:
        console.print(f"[yellow]No logs found for {name}[/yellow]")
        return

    for entry in reversed(entries):
        style = LEVEL_STYLES.get(entry["level"], "white")
        console.print(
            f"[dim]{entry['timestamp'][11:19]}[/dim] [{style}]{entry['message']}[/{style}]",
            highlight=False,
        )


@app.command("summary")
def summary(
    hours: float = typer.Option(24, "--hours", help="Number of hours to summarize"),
):
    """Summarize recent log activity."""
    data = run_tool("get_log_summary", hours=hours)

    console.print(f"[bold]Log summary (last {hours:g}h)[/bold]")
    console.print(f"  Processes: {data['total_processes']} ({data['active_processes']} running)")
    console.print(f"  Log entries: {data['total_entries']} ({data['recent_entries']} recent)")
    console.print(f"  Recent errors: [red]{data['recent_errors']}[/red]")


@app.command("prune")
def prune(
    max_age_hours: float = typer.Argument(..., help="Maximum age of logs to keep in hours"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only show what would be deleted"),
):
    """Delete logs older than MAX_AGE_HOURS and their orphaned processes."""
    data = run_tool("prune_old_logs", max_age_hours=max_age_hours, dry_run=dry_run)

    if dry_run:
        console.print(f"[yellow]{data['message']}[/yellow]")
    else:
        console.print(f"[green]✓[/green] {data['message']}")


@app.command("stats")
def stats():
    """Show log store size and age."""
    data = run_tool("get_log_statistics")

    console.print("[bold]Log statistics[/bold]")
    console.print(f"  Log entries: {data['total_logs']}")
    console.print(f"  Processes: {data['total_processes']}")
    console.print(f"  Disk usage: {data['disk_usage_mb']} MB")

    age_info = data["age_info"]
    if age_info:
        console.print(
            f"  Oldest log: {data['oldest_log']} ({age_info['oldest_log_age_hours']}h ago)"
        )
        console.print(
            f"  Newest log: {data['newest_log']} ({age_info['newest_log_age_hours']}h ago)"
        )


@app.command("reindex")
def reindex():
    """Rebuild the full-text search indexes."""
    counts = run_tool("rebuild_search_index")
    console.print(
        f"[green]✓[/green] Reindexed {counts['log_entries']} log entries and "
        f"{counts['session_summaries']} session summaries"
    )


if __name__ == "__main__":
    app()
