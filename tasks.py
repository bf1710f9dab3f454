"""Tasks for the vsphere-roles project."""

from pathlib import Path

from invoke import Context, Task, task  # type: ignore[import-not-found]
from rich import box  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.panel import Panel  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from vsphere_roles import config

console = Console()

MAIN_DIRECTORY_PATH = Path(__file__).parent


def _connection_flags(user: str, insecure: bool) -> str:
    flags = ""
    if user:
        flags += f' --user "{user}"'
    if insecure:
        flags += " --insecure"
    return flags


@task(name="list")
def list_tasks(context: Context) -> None:
    """List all available invoke tasks with descriptions."""
    table = Table(
        title="vsphere-roles Tasks",
        box=box.SIMPLE,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Task", style="green", no_wrap=True)
    table.add_column("Description", style="white")

    public = [obj for obj in globals().values() if isinstance(obj, Task) and not obj.name.startswith("_")]
    for role_task in sorted(public, key=lambda t: t.name):
        summary = (role_task.__doc__ or "").strip().split("\n")[0]
        table.add_row(role_task.name, summary or "[dim]-[/dim]")

    console.print()
    console.print(table)
    console.print()


@task
def info(context: Context) -> None:
    """Show current vCenter connection settings."""
    try:
        import importlib.metadata

        client_version = importlib.metadata.version(config.CLIENT_DISTRIBUTION)
    except Exception:
        client_version = "not installed"

    info_msg = (
        f"[cyan]User:[/cyan] {config.VSPHERE_USER or '[dim]prompt[/dim]'}\n"
        f"[cyan]Password:[/cyan] {'set' if config.VSPHERE_PASSWORD else '[dim]prompt[/dim]'}\n"
        f"[cyan]Port:[/cyan] {config.VSPHERE_PORT}\n"
        f"[cyan]TLS Verification:[/cyan] {'Disabled' if config.VSPHERE_INSECURE else 'Enabled'}\n"
        f"[cyan]Timeout:[/cyan] {config.VSPHERE_TIMEOUT}s\n"
        f"[cyan]INav Role Name:[/cyan] {config.INAV_ROLE_NAME}\n"
        f"[cyan]pyVmomi:[/cyan] {client_version}"
    )

    console.print()
    console.print(
        Panel(
            info_msg,
            title="[bold]vCenter Configuration[/bold]",
            border_style="blue",
            box=box.SIMPLE,
        )
    )
    console.print()


@task(
    name="import-role",
    help={
        "name": "Role name (letters and spaces only)",
        "permission_file": "JSON file with an array of privilege ids",
        "target": "vCenter address or FQDN",
        "overwrite": "Replace the role if it already exists",
        "dry_run": "Resolve privileges without changing vCenter",
    },
)
def import_role(
    context: Context,
    name: str,
    permission_file: str,
    target: str,
    overwrite: bool = False,
    dry_run: bool = False,
    user: str = "",
    insecure: bool = False,
) -> None:
    """Import a role from a JSON permission file."""
    cmd = (
        f'uv run python scripts/import_role.py --name "{name}" '
        f'--permission-file "{permission_file}" --target {target}'
    )
    if overwrite:
        cmd += " --overwrite"
    if dry_run:
        cmd += " --dry-run"
    cmd += _connection_flags(user, insecure)
    context.run(cmd, pty=True)


@task(name="create-inav-role")
def create_inav_role(
    context: Context,
    target: str,
    name: str = config.INAV_ROLE_NAME,
    user: str = "",
    insecure: bool = False,
) -> None:
    """Create the Infrastructure Navigator access role."""
    cmd = f'uv run python scripts/create_inav_role.py --target {target} --name "{name}"'
    cmd += _connection_flags(user, insecure)
    context.run(cmd, pty=True)


@task(name="export-role")
def export_role(
    context: Context,
    name: str,
    output: str,
    target: str,
    user: str = "",
    insecure: bool = False,
) -> None:
    """Export a role to a JSON permission file."""
    cmd = f'uv run python scripts/export_role.py --name "{name}" --output "{output}" --target {target}'
    cmd += _connection_flags(user, insecure)
    context.run(cmd, pty=True)


@task(name="run-tests")
def run_tests(context: Context) -> None:
    """Run all tests."""
    console.print()
    console.print(
        Panel(
            "[bold cyan]Running Tests[/bold cyan]", border_style="cyan", box=box.SIMPLE
        )
    )
    context.run("pytest -vv tests")
    console.print("[green]✓[/green] Tests completed")


@task(name="_lint-mypy")
def lint_mypy(context: Context) -> None:
    """Run mypy to check all Python files."""
    print(" - Check code with mypy")
    exec_cmd = "mypy --show-error-codes ."
    with context.cd(MAIN_DIRECTORY_PATH):
        context.run(exec_cmd)


@task(name="_lint-ruff")
def lint_ruff(context: Context) -> None:
    """Run ruff to check all Python files."""
    print(" - Check code with ruff")
    exec_cmd = "ruff check ."
    with context.cd(MAIN_DIRECTORY_PATH):
        context.run(exec_cmd)


@task(name="lint")
def lint_all(context: Context) -> None:
    """Run all linters."""
    console.print()
    console.print(
        Panel(
            "[bold yellow]Running All Linters[/bold yellow]\n"
            "[dim]Ruff → Mypy[/dim]",
            border_style="yellow",
            box=box.SIMPLE,
        )
    )

    console.print("\n[yellow]→[/yellow] Running ruff...")
    lint_ruff(context)

    console.print("\n[yellow]→[/yellow] Running mypy...")
    lint_mypy(context)

    console.print("\n[green]✓[/green] All linters completed!")
    console.print()
