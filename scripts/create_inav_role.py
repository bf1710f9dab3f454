#!/usr/bin/env python3
"""
Create the vCenter role used by the Infrastructure Navigator add-on.

The role gets exactly three privileges:

    VirtualMachine.Interact.ConsoleInteract   Console interaction
    VirtualMachine.Interact.GuestControl      Guest operating system management by VIX API
    VirtualMachine.Interact.AnswerQuestion    Answer virtual machine questions

The script does not check whether the role exists first. Creating a role
that is already there fails with an error from vCenter, as does a server
that lacks one of the privileges.

Usage:
======
    python scripts/create_inav_role.py --target vcenter.lab.local
    python scripts/create_inav_role.py -t vcenter.lab.local --name "INav Access"

    # Via invoke task (from tasks.py)
    uv run invoke create-inav-role --target vcenter.lab.local

Exit Codes:
===========
    0: Role created
    1: Creation failed
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from vsphere_roles import config
from vsphere_roles.exceptions import RoleExistsError, RoleToolError
from vsphere_roles.roles import create_inav_role
from vsphere_roles.ui import prompt_password, render_error, render_header, render_role_summary

console = Console()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the Infrastructure Navigator access role")
    parser.add_argument("--target", "-t", required=True, help="vCenter address or FQDN")
    parser.add_argument(
        "--name",
        "-n",
        default=config.INAV_ROLE_NAME,
        help=f"Role name (default: {config.INAV_ROLE_NAME})",
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
    """Create the role and print it with its privileges. Returns the exit code."""
    render_header(console, "Creating Infrastructure Navigator Role", args.target, role=args.name)

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
            console.print(f"[green]✓[/green] Connected to [bold]{escape(args.target)}[/bold]")
            name, privileges = create_inav_role(client, args.name)
    except RoleExistsError as e:
        render_error(console, str(e), tip="Delete the role in vCenter or pass a different --name.")
        return 1
    except RoleToolError as e:
        render_error(console, f"Failed to create role: {e}")
        return 1

    render_role_summary(console, name, privileges)
    console.print(f"\n[green]✓[/green] Created role [bold]{escape(name)}[/bold]")
    return 0


if __name__ == "__main__":
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(main(args))
