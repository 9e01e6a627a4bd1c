# tenant_console/cli/utils_cli.py
import asyncio
import json
from typing import Any, Awaitable, Callable, TypeVar

import typer

from .config import CONSOLE_CLI_API_BASE_URL, CONSOLE_CLI_STORAGE_BACKEND
from ..console import AdminConsole
from ..errors import AuthInvalidError, BusyError, RequestFailedError, ValidationError
from ..sessions.credential_store import build_credential_store
from ..tenants.models import TenantSummary, days_left, format_date

T = TypeVar("T")


def build_console() -> AdminConsole:
    """Console configured for one CLI invocation."""
    return AdminConsole(
        credential_store=build_credential_store(CONSOLE_CLI_STORAGE_BACKEND),
        base_url=CONSOLE_CLI_API_BASE_URL,
        debounce_seconds=0,
    )


def run_with_console(
    operation: Callable[[AdminConsole], Awaitable[T]],
    require_auth: bool = True,
) -> T:
    """
    Run `operation` against a started console and map console errors to exit codes.

    The stored session is resumed first; commands that need it fail fast when
    there is none.
    """

    async def runner() -> T:
        console = build_console()
        try:
            authenticated = await console.start(load_directory=False)
            if require_auth and not authenticated:
                typer.secho(
                    "CLI: Not logged in. Run 'tenant-console login' first.",
                    fg=typer.colors.RED
                )
                raise typer.Exit(code=1)
            return await operation(console)
        finally:
            await console.aclose()

    try:
        return asyncio.run(runner())
    except AuthInvalidError as e:
        typer.secho(f"CLI: Session ended - {e.message}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except ValidationError as e:
        typer.secho(f"CLI: Invalid input - {e.message}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except BusyError as e:
        typer.secho(f"CLI: Busy - {e.message}", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    except RequestFailedError as e:
        typer.secho(f"CLI: API Error ({e.status_class}) - {e.message}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


def format_tenant_row(tenant: TenantSummary) -> str:
    expiry = tenant.expiry_date
    remaining = days_left(expiry)
    expiry_text = format_date(expiry)
    if remaining is not None:
        expiry_text += f" ({remaining}d)"
    return (
        f"{tenant.id:>6}  {tenant.company_name[:30]:<30}  {tenant.status:<10}  "
        f"{(tenant.plan or '-'):<13}  {tenant.user_count:>5}  {expiry_text}"
    )
