"""Config CLI commands for managing settings."""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from redaxo_relay.auth.authenticator import Authenticator
from redaxo_relay.auth.credentials import StaticCredentialSource
from redaxo_relay.auth.session_store import MemorySessionStore
from redaxo_relay.cli.utils import handle_relay_errors
from redaxo_relay.config import (
    CONFIG_PATH,
    Settings,
    get_settings,
    load_config,
    reset_settings,
    save_config,
)
from redaxo_relay.portal.controllers import admin_set

console = Console()
app = typer.Typer(help="Manage configuration")

# Settings that can be configured via the config command
CONFIGURABLE_KEYS = {
    "external_location": {
        "description": "URL of the Redaxo backend",
        "type": "str",
        "example": "https://cms.example.org/redaxo",
    },
    "portal_base_url": {
        "description": "Base URL for relative locations",
        "type": "str",
        "example": "https://portal.example.org",
    },
    "authentication_refresh_interval": {
        "description": "Keep-alive interval in seconds",
        "type": "int",
        "example": "600",
    },
    "relogin_delay": {
        "description": "Seconds a login status is trusted",
        "type": "int",
        "example": "5",
    },
    "enable_ssl_verify": {
        "description": "Verify TLS certificates",
        "type": "bool",
        "example": "true",
    },
    "timeout": {
        "description": "HTTP timeout in seconds (5-120)",
        "type": "int",
        "example": "30",
    },
    "dialect": {
        "description": "Backend markup (redaxo5, redaxo4)",
        "type": "str",
        "example": "redaxo5",
    },
}

# Applied through the admin validators
ADMIN_KEYS = ("external_location", "authentication_refresh_interval")


def parse_value(key: str, value: str) -> str | int | bool:
    """Parse string value to appropriate type based on key."""
    key_info = CONFIGURABLE_KEYS.get(key)
    if not key_info:
        return value

    value_type = key_info["type"]

    if value_type == "bool":
        return value.lower() in ("true", "1", "yes", "on")
    elif value_type == "int":
        try:
            return int(value)
        except ValueError:
            raise typer.BadParameter(f"'{value}' is not a valid number")
    return value


def validate_value(key: str, value: str | int | bool) -> None:
    """Validate a config value not covered by the admin validators."""
    if key == "timeout":
        if not isinstance(value, int) or not (5 <= value <= 120):
            raise typer.BadParameter("timeout must be between 5 and 120")
    elif key == "relogin_delay":
        if not isinstance(value, int) or value < 0:
            raise typer.BadParameter("relogin_delay must not be negative")
    elif key == "dialect":
        if value not in ("redaxo5", "redaxo4"):
            raise typer.BadParameter("dialect must be redaxo5 or redaxo4")


@app.command("show")
def config_show():
    """
    Show all settings.

    Examples:
        redaxo-relay config show
    """
    config = load_config()
    settings = get_settings()

    table = Table(title="redaxo-relay configuration", show_header=True)
    table.add_column("Setting", style="cyan", width=32)
    table.add_column("Value", style="green", width=36)
    table.add_column("Source", style="dim", width=12)
    table.add_column("Description", style="dim", width=35)

    for key, info in CONFIGURABLE_KEYS.items():
        file_value = config.get(key)
        effective_value = getattr(settings, key, None)

        if file_value is not None:
            source = "config.yaml"
            display_value = str(file_value)
        elif effective_value is not None and effective_value != Settings.model_fields[key].default:
            source = "env var"
            display_value = str(effective_value)
        elif effective_value is not None:
            source = "default"
            display_value = f"[dim]{effective_value}[/dim]"
        else:
            source = "-"
            display_value = "[dim]not set[/dim]"

        table.add_row(key, display_value, source, info["description"])

    console.print(table)
    console.print()
    console.print(f"[dim]Browser refresh interval: {settings.client_refresh_interval}s[/dim]")
    console.print(f"[dim]Config file: {CONFIG_PATH}[/dim]")


@app.command("set")
@handle_relay_errors
def config_set(
    key: Annotated[str, typer.Argument(help="Setting name")],
    value: Annotated[str, typer.Argument(help="New value")],
):
    """
    Set a configuration value.

    A new external location is probed before it is saved.

    Examples:
        redaxo-relay config set external_location https://cms.example.org/redaxo
        redaxo-relay config set authentication_refresh_interval 300
    """
    if key not in CONFIGURABLE_KEYS:
        console.print(f"[red]Unknown setting:[/red] {key}")
        console.print()
        console.print("[bold]Available settings:[/bold]")
        for k, info in CONFIGURABLE_KEYS.items():
            console.print(f"  [cyan]{k}[/cyan] - {info['description']}")
        raise typer.Exit(1)

    if key in ADMIN_KEYS:
        settings = get_settings()
        # Probe with a throwaway session, the stored one belongs to the old location
        with Authenticator(settings, MemorySessionStore(), StaticCredentialSource()) as probe:
            result = admin_set(settings, probe, key, value)
        parsed_value = result["value"]
    else:
        parsed_value = parse_value(key, value)
        validate_value(key, parsed_value)

    config = load_config()
    config[key] = parsed_value
    save_config(config)
    reset_settings()

    console.print(f"[green]✓[/green] {key} = {parsed_value}")
