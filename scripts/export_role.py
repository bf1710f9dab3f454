#!/usr/bin/env python3
"""
Export a vCenter role to a JSON permission file.

The output is the format import_role.py reads, so a role can be copied
from one vCenter to another. System.* privileges are left out because
vCenter adds them to every role.

Usage:
    python scripts/export_role.py --name "Backup Operator" --output backup.json -t vcenter.lab.local
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from vsphere_roles import config
from vsphere_roles.exceptions import RoleToolError
from vsphere_roles.roles import export_role
from vsphere_roles.ui import prompt_password, render_error, render_header, render_role_summary

console = Console()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export a vCenter role to a JSON permission file")
    parser.add_argument("--name", "-n", required=True, help="Name of the role to export")
    parser.add_argument("--output", "-o", required=True, help="File to write the privilege list to")
    parser.add_argument("--target", "-t", required=True, help="vCenter address or FQDN")
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
    """Main function to export one role."""
    render_header(console, "Exporting vCenter Role", args.target, role=args.name, output=args.output)

    try:
        config.validate_config()
        config.check_client_version()
    except (ValueError, RoleToolError) as e:
        render_error(console, str(e))
        return 1

    from vsphere_roles.api import SessionRegistry

    password = prompt_password(console, args.user, args.target, config.VSPHERE_PASSWORD)

    try:
        with SessionRegistry() as sessions:
            client = sessions.connect(args.target, args.user, password, insecure=args.insecure)
            privileges = export_role(client, args.name, args.output)
    except RoleToolError as e:
        render_error(console, f"Export failed: {e}")
        return 1
    except OSError as e:
        render_error(console, f"Cannot write {args.output}: {e}")
        return 1

    render_role_summary(console, args.name, privileges)
    console.print(f"\n[green]✓[/green] Saved [bold]{escape(args.output)}[/bold]")
    return 0


if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(main(args))
