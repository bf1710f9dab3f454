"""Terminal output helpers shared by the role scripts."""

from typing import Iterable, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table


def render_header(console: Console, title: str, target: str, **details: str) -> None:
    """Print the panel shown at the start of every script."""
    lines = [f"[bold cyan]{title}[/bold cyan]", f"[dim]Target:[/dim] {escape(target)}"]
    for label, value in details.items():
        lines.append(f"[dim]{label.replace('_', ' ').title()}:[/dim] {escape(str(value))}")

    console.print()
    console.print(Panel("\n".join(lines), border_style="cyan", box=box.SIMPLE))


def render_unresolved(console: Console, privilege_ids: Iterable[str]) -> None:
    """Print one warning per privilege identifier the server did not know."""
    for privilege_id in privilege_ids:
        console.print(f"  [yellow]⚠[/yellow] Privilege [bold]{escape(privilege_id)}[/bold] not found, skipping")


def render_role_summary(console: Console, name: str, privileges: Iterable[str]) -> None:
    """Print a role and its privilege list as a table."""
    privileges = list(privileges)
    table = Table(
        title=f"Role [bold]{escape(name)}[/bold]",
        box=box.SIMPLE,
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("#", style="dim", justify="right")
    table.add_column("Privilege", style="cyan")

    for index, privilege in enumerate(privileges, start=1):
        table.add_row(str(index), escape(privilege))

    if not privileges:
        table.add_row("-", "[yellow]No privileges attached[/yellow]")

    console.print()
    console.print(table)


def prompt_password(console: Console, user: str, target: str, password: str = "") -> str:
    """Return password, asking for it on the terminal when it is empty."""
    if password:
        return password
    prompt = f"[cyan]Password for[/cyan] [bold]{escape(user)}@{escape(target)}[/bold]: "
    return console.input(prompt, password=True)


def render_error(console: Console, message: str, tip: Optional[str] = None) -> None:
    """Print a failure line, with an optional hint underneath."""
    console.print(f"[red]✗[/red] {escape(message)}")
    if tip:
        console.print(f"\n[yellow]💡 Tip:[/yellow] {escape(tip)}")
