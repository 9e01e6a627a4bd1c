# tenant_console/cli/main_cli.py
import typer
from typing_extensions import Annotated

from . import tenant_cli
from .utils_cli import echo_json, run_with_console
from ..console import AdminConsole

# Main CLI application with help enabled when no arguments are provided
app = typer.Typer(
    name="tenant-console",
    help="Tenant administration console for the global admin API.",
    no_args_is_help=True
)

# Register tenant commands under 'tenant' subcommand
app.add_typer(tenant_cli.app, name="tenant")


@app.callback()
def main_callback():
    """
    Tenant console main CLI application.
    Use 'tenant-console tenant --help' for tenant commands.
    """
    pass


@app.command("login")
def login(
    username: Annotated[str, typer.Option(prompt="Username", help="Administrator username.")],
    password: Annotated[
        str,
        typer.Option(prompt="Password", hide_input=True, help="Administrator password.")
    ],
):
    """Sign in and store the session credential for later commands."""

    async def operation(console: AdminConsole):
        return await console.login(username, password, load_directory=False)

    admin = run_with_console(operation, require_auth=False)
    typer.secho(f"Logged in as {admin.username}.", fg=typer.colors.GREEN)


@app.command("logout")
def logout():
    """Discard the stored session credential."""

    async def operation(console: AdminConsole):
        await console.logout()

    run_with_console(operation, require_auth=False)
    typer.secho("Logged out.", fg=typer.colors.GREEN)


@app.command("stats")
def stats():
    """Show tenant counts by status."""

    async def operation(console: AdminConsole):
        return await console.api.get_statistics()

    result = run_with_console(operation)
    echo_json(result.model_dump())


def cli_entry_point():
    """Entry point function for console script registration in pyproject.toml"""
    app()


if __name__ == "__main__":
    cli_entry_point()
