# tenant_console/cli/tenant_cli.py
import typer
from typing import Optional
from typing_extensions import Annotated

from .utils_cli import echo_json, format_tenant_row, run_with_console
from ..console import AdminConsole
from ..tenants.models import Query, StatusFilter

app = typer.Typer(
    name="tenant",
    help="Browse and manage tenants via the admin API.",
    no_args_is_help=True
)


@app.command("list")
def list_tenants(
    status: Annotated[
        str,
        typer.Option(help="Status filter: all, trial, active, suspended, expired.")
    ] = StatusFilter.ALL.value,
    search: Annotated[str, typer.Option(help="Free-text search on company name or email.")] = "",
    page: Annotated[int, typer.Option(min=1, help="Page number, starting at 1.")] = 1,
):
    """List one page of the tenant directory."""

    async def operation(console: AdminConsole):
        try:
            query = Query(search_text=search, status_filter=status, page=page)
        except ValueError:
            typer.secho(f"Error: Unknown status filter '{status}'.", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        console.coordinator.apply_query(query)
        await console.coordinator.drain()
        if console.directory.error is not None:
            raise console.directory.error
        return console.directory

    directory = run_with_console(operation)
    info = directory.page_info
    if not directory.tenants:
        typer.echo("No tenants found.")
    for tenant in directory.tenants:
        typer.echo(format_tenant_row(tenant))
    typer.echo(f"Page {info.page} of {info.total_pages} ({info.total_count} tenants)")


@app.command("get")
def get_tenant(
    tenant_id: Annotated[int, typer.Argument(help="The ID of the tenant to retrieve.")]
):
    """Show a tenant's full record."""

    async def operation(console: AdminConsole):
        return await console.api.get_tenant(tenant_id)

    detail = run_with_console(operation)
    echo_json(detail.model_dump(mode="json"))


@app.command("extend")
def extend_trial(
    tenant_id: Annotated[int, typer.Argument(help="The ID of the tenant.")],
    days: Annotated[int, typer.Option(help="Number of days to add to the trial.")] = 14,
):
    """Extend a tenant's trial."""

    async def operation(console: AdminConsole):
        return await console.actions.extend_trial(tenant_id, days=days)

    run_with_console(operation)
    typer.secho(f"Trial for tenant {tenant_id} extended by {days} days.", fg=typer.colors.GREEN)


@app.command("suspend")
def suspend_tenant(
    tenant_id: Annotated[int, typer.Argument(help="The ID of the tenant.")],
    reason: Annotated[str, typer.Option(prompt="Reason for suspension", help="Why the tenant is suspended.")],
):
    """Suspend a tenant."""

    async def operation(console: AdminConsole):
        return await console.actions.suspend(tenant_id, reason=reason)

    run_with_console(operation)
    typer.secho(f"Tenant {tenant_id} suspended.", fg=typer.colors.GREEN)


@app.command("activate")
def activate_tenant(
    tenant_id: Annotated[int, typer.Argument(help="The ID of the tenant.")],
    plan: Annotated[
        str,
        typer.Option(help="Plan to activate: trial, starter, professional, enterprise.")
    ] = "starter",
):
    """Activate a suspended tenant on a plan."""

    async def operation(console: AdminConsole):
        return await console.actions.activate(tenant_id, plan=plan)

    run_with_console(operation)
    typer.secho(f"Tenant {tenant_id} activated on plan '{plan}'.", fg=typer.colors.GREEN)


@app.command("update")
def update_tenant(
    tenant_id: Annotated[int, typer.Argument(help="The ID of the tenant.")],
    max_users: Annotated[Optional[int], typer.Option(help="Maximum number of users.")] = None,
    max_camps: Annotated[Optional[int], typer.Option(help="Maximum number of camps.")] = None,
    plan: Annotated[Optional[str], typer.Option(help="Subscription plan.")] = None,
    notes: Annotated[Optional[str], typer.Option(help="Administrator notes.")] = None,
    modules: Annotated[Optional[str], typer.Option(help="Comma-separated enabled modules.")] = None,
):
    """Update a tenant's limits, plan, notes or modules."""
    changes = {
        "max_users": max_users,
        "max_camps": max_camps,
        "plan": plan,
        "notes": notes,
        "modules": modules,
    }
    changes = {key: value for key, value in changes.items() if value is not None}

    async def operation(console: AdminConsole):
        return await console.actions.update(tenant_id, **changes)

    run_with_console(operation)
    typer.secho(f"Tenant {tenant_id} updated.", fg=typer.colors.GREEN)
