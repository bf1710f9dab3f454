#!/usr/bin/env python3
"""
Import a vCenter role from a JSON list of privilege identifiers.

The permission file is a JSON array of privilege ids, for example:

    [
      "Datastore.Browse",
      "VirtualMachine.Interact.ConsoleInteract",
      "VirtualMachine.Interact.PowerOn"
    ]

Execution Flow:
===============
1. Check that the pyVmomi client library is installed and recent enough
2. Validate the role name (ASCII letters and spaces only)
3. Connect to vCenter
4. Stop if the role already exists, unless --overwrite is given
5. Read the permission file
6. Look up every privilege id; unknown ids are reported and skipped
7. Create the role (replacing the old one with --overwrite) and attach privileges

Error Handling:
===============
- Missing or outdated pyVmomi, a bad role name, connection failures, an
  existing role without --overwrite and an unreadable or malformed
  permission file all abort the import
- Unknown privilege ids only produce a warning; the role is created with
  the privileges that were found

Usage:
======
    python scripts/import_role.py --name "Backup Operator" \\
        --permission-file roles/backup.json --target vcenter.lab.local

    # Replace an existing role
    python scripts/import_role.py -n "Backup Operator" -f roles/backup.json \\
        -t vcenter.lab.local --overwrite

    # Via invoke task (from tasks.py)
    uv run invoke import-role --name "Backup Operator" --permission-file roles/backup.json \\
        --target vcenter.lab.local

Environment Variables:
======================
    VSPHERE_USER: User name (overridden by --user)
    VSPHERE_PASSWORD: Password (prompted for when empty)
    VSPHERE_PORT: HTTPS port (default: 443)
    VSPHERE_INSECURE: "true" to skip TLS verification (overridden by --insecure)
    VSPHERE_TIMEOUT: Connection timeout in seconds (default: 30)

Exit Codes:
===========
    0: Role imported (or dry run completed)
    1: Import failed
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from vsphere_roles import config
from vsphere_roles.exceptions import RoleExistsError, RoleToolError
from vsphere_roles.roles import import_role, validate_role_name
from vsphere_roles.ui import prompt_password, render_error, render_header, render_role_summary

console = Console()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import a vCenter role from a JSON permission list",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/import_role.py -n "Backup Operator" -f roles/backup.json -t vcenter.lab.local
  python scripts/import_role.py -n "Backup Operator" -f roles/backup.json -t vcenter.lab.local --overwrite
        """,
    )
    parser.add_argument("--name", "-n", required=True, help="Role name (letters and spaces only)")
    parser.add_argument(
        "--permission-file", "-f", required=True, help="JSON file with an array of privilege ids"
    )
    parser.add_argument("--target", "-t", required=True, help="vCenter address or FQDN")
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace the role if it already exists",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve privileges and report without changing vCenter",
    )
    parser.add_argument("--user", "-u", default=config.VSPHERE_USER, help="vCenter user name")
    parser.add_argument(
        "--insecure",
        action="store_true",
        default=config.VSPHERE_INSECURE,
        help="Skip TLS certificate verification for this connection",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")
    return parser.parse_args(argv)


def main(args: argparse.Namespace) -> int:
    """
    Run the role import.

    Args:
        args: Parsed command-line arguments

    Returns:
        0 on success, 1 on failure
    """
    render_header(
        console,
        "Importing vCenter Role",
        args.target,
        role=args.name,
        permission_file=args.permission_file,
        overwrite="yes" if args.overwrite else "no",
    )

    try:
        config.validate_config()
        version = config.check_client_version()
        validate_role_name(args.name)
    except (ValueError, RoleToolError) as e:
        render_error(console, str(e))
        return 1

    console.print(f"[dim]pyVmomi {version}[/dim]")

    from vsphere_roles.api import SessionRegistry

    password = prompt_password(console, args.user, args.target, config.VSPHERE_PASSWORD)
    target = escape(args.target)

    console.print(f"\n[cyan]→[/cyan] Connecting to [bold]{target}[/bold]...")
    try:
        with SessionRegistry() as sessions:
            client = sessions.connect(args.target, args.user, password, insecure=args.insecure)
            console.print(f"[green]✓[/green] Connected to [bold]{target}[/bold]")
            console.print(f"\n[cyan]→[/cyan] Importing role [bold]{escape(args.name)}[/bold]...")

            result = import_role(
                client,
                args.name,
                args.permission_file,
                overwrite=args.overwrite,
                dry_run=args.dry_run,
                console=console,
            )

            if args.dry_run:
                render_role_summary(console, result["name"], result["privileges"])
                console.print("\n[yellow]Dry run:[/yellow] no changes were made")
                return 0

            render_role_summary(console, args.name, client.get_role_privileges(args.name))
    except RoleExistsError as e:
        render_error(console, str(e), tip="Pass --overwrite to replace the existing role.")
        return 1
    except RoleToolError as e:
        render_error(console, f"Import failed: {e}")
        return 1

    action = "Replaced" if result["replaced"] else "Created"
    console.print(
        f"\n[green]✓[/green] {action} role [bold]{escape(args.name)}[/bold] "
        f"with {len(result['privileges'])} privilege(s)"
    )
    if result["unresolved"]:
        console.print(
            f"[yellow]⚠[/yellow] {len(result['unresolved'])} privilege id(s) were not found and were skipped"
        )
    return 0


if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(main(args))
