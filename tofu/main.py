"""Tofu CLI — lead research from the terminal.

Commands:
    tofu search people|companies  — Exa search, leads saved for review
    tofu research                 — Deep research (sync, or --async via the worker)
    tofu job                      — Status of a background research job
    tofu board add                — Create a Jira issue for a lead
    tofu issue-research           — Research the lead behind a Jira issue
    tofu leads list|status|delete — Review saved leads
    tofu history                  — Recent searches (--clear to wipe)
    tofu config show|set          — App configuration
    tofu dashboard                — Stats overview
    tofu worker                   — Run the background research worker
"""

from __future__ import annotations

import asyncio
from typing import Any

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from tofu.utils import setup_logging

# Initialize logging on import
setup_logging()

app = typer.Typer(
    name="tofu",
    help="🍱 Tofu — find, research and track leads with Exa, Jira and Confluence",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
search_app = typer.Typer(help="Search for people or companies", no_args_is_help=True)
board_app = typer.Typer(help="Jira board operations", no_args_is_help=True)
leads_app = typer.Typer(help="Review saved leads", no_args_is_help=True)
config_app = typer.Typer(help="App configuration", no_args_is_help=True)
app.add_typer(search_app, name="search")
app.add_typer(board_app, name="board")
app.add_typer(leads_app, name="leads")
app.add_typer(config_app, name="config")

console = Console()


async def _runtime():
    from tofu.runtime import Runtime

    return await Runtime.create()


async def _run_action(raw: dict[str, Any]):
    from tofu.actions import run_action

    runtime = await _runtime()
    try:
        return await run_action(raw, runtime)
    finally:
        await runtime.close()


async def _resolve(name: str, payload: dict[str, Any] | None = None):
    from tofu.resolver import build_resolver

    runtime = await _runtime()
    try:
        return await build_resolver().invoke(name, payload, runtime)
    finally:
        await runtime.close()


def _print_markdown(text: str) -> None:
    console.print(Markdown(text))


def _entity_type(value: str) -> str:
    value = value.lower()
    if value not in ("person", "company"):
        console.print(f"[red]Unknown type '{value}'. Use: person or company[/]")
        raise typer.Exit(1)
    return value


# ── tofu search ──────────────────────────────────────────────


@search_app.command("people")
def search_people(
    query: str = typer.Argument(..., help="Who to look for, in plain language"),
    num: int = typer.Option(None, "--num", "-n", help="Number of results (default from config)"),
):
    """👤 Search for people."""
    raw = {"action": "search-people", "query": query}
    if num:
        raw["numResults"] = num
    with console.status("[dim]Searching Exa...[/]", spinner="dots"):
        result = asyncio.run(_run_action(raw))
    _print_markdown(result)


@search_app.command("companies")
def search_companies(
    query: str = typer.Argument(..., help="Which companies to look for"),
    num: int = typer.Option(None, "--num", "-n", help="Number of results (default from config)"),
):
    """🏢 Search for companies."""
    raw = {"action": "search-companies", "query": query}
    if num:
        raw["numResults"] = num
    with console.status("[dim]Searching Exa...[/]", spinner="dots"):
        result = asyncio.run(_run_action(raw))
    _print_markdown(result)


# ── tofu research / job ──────────────────────────────────────


@app.command()
def research(
    subject: str = typer.Argument(..., help="Person or company name"),
    entity_type: str = typer.Option("company", "--type", "-t", help="person or company"),
    background: bool = typer.Option(False, "--async", help="Queue for the worker and return at once"),
):
    """🔬 Deep research on a person or company."""
    action = "deep-research-async" if background else "deep-research"
    raw = {"action": action, "query": subject, "entityType": _entity_type(entity_type)}
    label = "Queueing research..." if background else "Researching (this can take a while)..."
    with console.status(f"[dim]{label}[/]", spinner="dots"):
        result = asyncio.run(_run_action(raw))
    _print_markdown(result)


@app.command()
def job(research_id: str = typer.Argument(..., help="Research ID from `tofu research --async`")):
    """📋 Status of a background research job."""
    result = asyncio.run(_run_action({"action": "research-status", "researchId": research_id}))
    _print_markdown(result)


# ── tofu board / issue-research ──────────────────────────────


@board_app.command("add")
def board_add(
    name: str = typer.Argument(..., help="Lead name"),
    summary: str = typer.Option(..., "--summary", "-s", help="One-line description"),
    entity_type: str = typer.Option("person", "--type", "-t", help="person or company"),
    details: str = typer.Option(None, "--details", help="Background information"),
    source_url: str = typer.Option(None, "--source-url", help="Where the lead was found"),
    project: str = typer.Option(None, "--project", "-p", help="Jira project key"),
):
    """📌 Create a Jira issue for a lead."""
    raw: dict[str, Any] = {
        "action": "add-to-board",
        "name": name,
        "entityType": _entity_type(entity_type),
        "summary": summary,
        "details": details,
        "sourceUrl": source_url,
        "projectKey": project,
    }
    result = asyncio.run(_run_action({k: v for k, v in raw.items() if v is not None}))
    _print_markdown(result)


@app.command("issue-research")
def issue_research(issue_key: str = typer.Argument(..., help="Jira issue key, e.g. LEADS-12")):
    """🔎 Research the lead behind a Jira issue and link the page."""
    with console.status("[dim]Researching...[/]", spinner="dots"):
        result = asyncio.run(_run_action({"action": "issue-deep-research", "issueKey": issue_key}))
    style = "green" if result.success else "red"
    body = result.message
    if result.page_url:
        body += f"\n\n📄 {result.page_title}\n{result.page_url}"
    console.print(Panel(body, border_style=style))
    if not result.success:
        raise typer.Exit(1)


# ── tofu leads ───────────────────────────────────────────────


@leads_app.command("list")
def leads_list(
    entity_type: str = typer.Option("all", "--type", "-t", help="person, company or all"),
    status: str = typer.Option("all", "--status", help="pending, accepted, rejected, contacted or all"),
    offset: int = typer.Option(0, "--offset"),
    limit: int = typer.Option(20, "--limit", "-n"),
):
    """📇 List saved leads, newest first."""
    data = asyncio.run(
        _resolve("getSavedLeads", {"type": entity_type, "status": status, "offset": offset, "limit": limit})
    )
    if not data["items"]:
        console.print("[yellow]No leads found. Run 'tofu search people ...' first.[/]")
        return

    table = Table(title=f"Leads ({data['total']} total)")
    table.add_column("ID", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Status", style="green")
    table.add_column("URL", style="blue")
    table.add_column("Found", style="dim")
    for lead in data["items"]:
        table.add_row(
            lead["id"],
            lead["type"],
            lead["name"],
            lead["status"],
            lead.get("profileUrl") or lead.get("website") or "—",
            lead["foundAt"][:10],
        )
    console.print(table)


@leads_app.command("status")
def leads_status(
    lead_id: str = typer.Argument(...),
    new_status: str = typer.Argument(..., help="pending, accepted, rejected or contacted"),
    entity_type: str = typer.Option("person", "--type", "-t"),
):
    """✏️ Change a lead's status."""
    result = asyncio.run(
        _resolve(
            "updateLeadStatus",
            {"leadId": lead_id, "leadType": _entity_type(entity_type), "newStatus": new_status},
        )
    )
    if result["success"]:
        console.print(f"[green]✓ {lead_id} → {new_status}[/]")
    else:
        console.print(f"[red]Could not update {lead_id}[/]")
        raise typer.Exit(1)


@leads_app.command("delete")
def leads_delete(
    lead_id: str = typer.Argument(...),
    entity_type: str = typer.Option("person", "--type", "-t"),
):
    """🗑 Delete a lead."""
    result = asyncio.run(_resolve("deleteLead", {"leadId": lead_id, "leadType": _entity_type(entity_type)}))
    if result["success"]:
        console.print(f"[green]✓ Deleted {lead_id}[/]")
    else:
        console.print(f"[red]Could not delete {lead_id}[/]")
        raise typer.Exit(1)


# ── tofu history ─────────────────────────────────────────────


@app.command()
def history(
    clear: bool = typer.Option(False, "--clear", help="Delete all search history"),
    limit: int = typer.Option(20, "--limit", "-n"),
):
    """🕘 Recent searches."""
    if clear:
        result = asyncio.run(_resolve("clearSearchHistory"))
        console.print("[green]✓ Search history cleared[/]" if result["success"] else "[red]Could not clear history[/]")
        return

    data = asyncio.run(_resolve("getSearchHistory", {"limit": limit}))
    if not data["items"]:
        console.print("[dim]No searches yet.[/]")
        return
    table = Table(title=f"Search history ({data['total']} total)")
    table.add_column("When", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Query", style="bold")
    table.add_column("Results", justify="right")
    for item in data["items"]:
        table.add_row(item["timestamp"][:19].replace("T", " "), item["searchType"], item["query"], str(item["resultCount"]))
    console.print(table)


# ── tofu config ──────────────────────────────────────────────


@config_app.command("show")
def config_show():
    """⚙ Show app configuration."""
    data = asyncio.run(_resolve("getConfig"))
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    for key in ("defaultProjectKey", "defaultIssueType", "defaultResultCount", "autoSaveResults", "confluenceSpaceKey"):
        table.add_row(key, str(data.get(key, "—")))
    console.print(Panel(table, title="[bold cyan]Tofu configuration[/]", border_style="cyan"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="e.g. defaultProjectKey, defaultResultCount, autoSaveResults"),
    value: str = typer.Argument(..., help="New value ('' to unset)"),
):
    """✏️ Change one configuration value."""
    current = asyncio.run(_resolve("getConfig"))
    current[key] = value if value != "" else None
    result = asyncio.run(_resolve("saveConfig", current))
    if result["success"]:
        console.print(f"[green]✓ {key} = {value!r}[/]")
    else:
        console.print(f"[red]Invalid value for {key}: {value!r}[/]")
        raise typer.Exit(1)


# ── tofu dashboard ───────────────────────────────────────────


@app.command()
def dashboard():
    """📊 Lead pipeline overview."""
    data = asyncio.run(_resolve("getDashboardData"))
    stats = data["stats"]

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column("Metric", style="cyan")
    stats_table.add_column("Value", style="bold white", justify="right")
    stats_table.add_row("Searches", str(stats.get("totalSearches", 0)))
    stats_table.add_row("Leads found", str(stats.get("totalLeadsFound", 0)))
    stats_table.add_row("Pending", str(stats.get("pendingLeads", 0)))
    stats_table.add_row("Accepted", str(stats.get("acceptedLeads", 0)))
    stats_table.add_row("Added to Jira", str(stats.get("leadsAddedToJira", 0)))
    console.print(Panel(stats_table, title="[bold magenta]📊 Tofu Dashboard[/]", border_style="magenta"))

    if data["recentSearches"]:
        console.print("[bold]Recent searches[/]")
        for item in data["recentSearches"]:
            console.print(f"  • {item['query']} [dim]({item['searchType']}, {item['resultCount']} results)[/]")
    if data["recentLeads"]:
        console.print("[bold]Recent leads[/]")
        for lead in data["recentLeads"]:
            console.print(f"  • {lead['name']} [dim]({lead['type']}, {lead['status']})[/]")


# ── tofu worker ──────────────────────────────────────────────


@app.command()
def worker(
    status: bool = typer.Option(False, "--status", help="Only report whether a worker is running"),
):
    """⚙ Run the background research worker (Ctrl+C to stop)."""
    from tofu.tasks import worker_process

    if status:
        pid = worker_process.read_pid()
        if pid:
            console.print(f"[green]Worker running (PID {pid})[/]")
        else:
            console.print("[yellow]No worker running[/]")
        return

    from tofu.config import settings

    console.print(f"[dim]Consuming {settings.queue_name} on {settings.redis_url}[/]")
    try:
        asyncio.run(worker_process._run(settings.queue_name, settings.redis_url))
    except KeyboardInterrupt:
        console.print("\n[dim]Worker stopped.[/]")


# ── tofu version ─────────────────────────────────────────────


@app.command()
def version():
    """📦 Show Tofu version."""
    from tofu import __version__
    console.print(f"[bold cyan]🍱 Tofu[/] v{__version__}")


# ── Entry point ──────────────────────────────────────────────

if __name__ == "__main__":
    app()
