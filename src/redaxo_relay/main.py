"""Main CLI entry point for redaxo-relay."""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from redaxo_relay.api.rpc import RemoteContentClient
from redaxo_relay.cli.commands import auth, config
from redaxo_relay.cli.commands.auth import UserOption
from redaxo_relay.cli.utils import backend_session, handle_relay_errors, setup_logging
from redaxo_relay.dialects.base import ANY_ID

console = Console()

app = typer.Typer(
    name="redaxo-relay",
    help="Relay a Redaxo backend session and inspect the backend structure",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log requests to the backend"),
    ] = False,
):
    setup_logging(verbose)


app.command("status")(auth.status)
app.command("login")(auth.do_login)
app.command("logout")(auth.do_logout)
app.command("refresh")(auth.do_refresh)

app.add_typer(config.app, name="config", help="Manage configuration")


@app.command("categories")
@handle_relay_errors
def categories(
    parent: Annotated[
        int,
        typer.Option("--parent", "-p", help="Only list categories below this one"),
    ] = -1,
    user: UserOption = None,
):
    """List the category tree of the backend."""
    with backend_session(user) as session:
        found = RemoteContentClient(session).get_categories(parent)

    if not found:
        console.print("[yellow]No categories found.[/yellow]")
        return

    table = Table(title="Categories", show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name")
    table.add_column("Parent", style="dim", justify="right")
    table.add_column("Children", style="dim")
    for category in found:
        table.add_row(
            str(category.id),
            "  " * category.level + (category.name or ""),
            str(category.parent_id),
            ", ".join(str(child) for child in category.children),
        )
    console.print(table)


@app.command("templates")
@handle_relay_errors
def templates(
    active: Annotated[
        bool,
        typer.Option("--active", "-a", help="Only active templates"),
    ] = False,
    user: UserOption = None,
):
    """List the page templates."""
    with backend_session(user) as session:
        found = RemoteContentClient(session).get_templates(only_active=active)

    table = Table(title="Templates", show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name")
    table.add_column("Active")
    for template in found or []:
        table.add_row(str(template.id), template.name or "", "✓" if template.active else "")
    console.print(table)


@app.command("modules")
@handle_relay_errors
def modules(user: UserOption = None):
    """List the content modules."""
    with backend_session(user) as session:
        found = RemoteContentClient(session).get_modules()

    table = Table(title="Modules", show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name")
    table.add_column("Active")
    for module in found or []:
        table.add_row(str(module.id), module.name or "", "✓" if module.active else "")
    console.print(table)


@app.command("articles")
@handle_relay_errors
def articles(
    category: Annotated[int, typer.Argument(help="Category id")],
    name: Annotated[
        str,
        typer.Option("--name", "-n", help="Regular expression for the article name"),
    ] = ".*",
    ids: Annotated[
        str,
        typer.Option("--id", "-i", help="Article id, or several joined by '|'"),
    ] = ANY_ID,
    user: UserOption = None,
):
    """
    List the articles of a category.

    Examples:
        redaxo-relay articles 3
        redaxo-relay articles 3 --name '^About'
        redaxo-relay articles 3 --id 11
    """
    with backend_session(user) as session:
        found = RemoteContentClient(session).find_articles_by_id_and_name(ids, name, category)

    if not found:
        console.print("[yellow]No matching articles.[/yellow]")
        return

    table = Table(title=f"Articles in category {category}", show_header=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name")
    table.add_column("Priority", justify="right")
    table.add_column("Template", style="dim")
    for article in found:
        table.add_row(
            str(article.article_id),
            article.article_name or "",
            str(article.priority) if article.priority is not None else "",
            article.template_name or "",
        )
    console.print(table)


if __name__ == "__main__":
    app()
