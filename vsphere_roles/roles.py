"""
Import and create vCenter authorization roles.

Two operations live here:

Role import:
    Create a role from a JSON file holding a list of privilege identifiers.
    The name is checked before anything talks to the server; an existing
    role blocks the import unless overwrite is requested, and that check
    happens before the permission file is read. Overwriting replaces the
    role even when it is still assigned; those assignments go with it.
    Identifiers missing from the server's privilege catalog are reported
    once each and skipped, so a role can end up with only the subset that
    resolved.

Infrastructure Navigator role:
    Create the fixed role the Infrastructure Navigator add-on logs in with
    and attach its three privileges. All three must be in the catalog.
    There is no existence check; a duplicate name is raised by the client.

Permission file format:
    A UTF-8 JSON array of strings, for example

        ["VirtualMachine.Interact.ConsoleInteract", "Datastore.Browse"]
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from rich.console import Console

from .config import INAV_ROLE_NAME
from .exceptions import (
    InvalidRoleNameError,
    PermissionFileError,
    PrivilegeNotFoundError,
    RoleExistsError,
    RoleNotFoundError,
)
from .ui import render_unresolved

logger = logging.getLogger(__name__)

ROLE_NAME_PATTERN = re.compile(r"[A-Za-z ]+")

INAV_PRIVILEGES: Tuple[str, ...] = (
    "VirtualMachine.Interact.ConsoleInteract",
    "VirtualMachine.Interact.GuestControl",
    "VirtualMachine.Interact.AnswerQuestion",
)

# vCenter adds these to every role on its own
SYSTEM_PRIVILEGE_PREFIX = "System."


def validate_role_name(name: str) -> str:
    """Reject role names that are not made of ASCII letters and spaces.

    Raises:
        InvalidRoleNameError: If the name is empty or has other characters
    """
    if not name or not ROLE_NAME_PATTERN.fullmatch(name):
        raise InvalidRoleNameError(f"Invalid role name '{name}': only letters and spaces are allowed")
    return name


def load_permission_file(path: Union[str, Path]) -> List[str]:
    """
    Read a permission file and return its privilege identifiers in order.

    Args:
        path: Path to a UTF-8 JSON file whose top level is an array of strings

    Returns:
        List of privilege identifiers as they appear in the file

    Raises:
        PermissionFileError: If the file is missing, unreadable, not valid
            JSON, or not an array of strings
    """
    file_path = Path(path)
    try:
        content = file_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise PermissionFileError(f"Permission file not found: {file_path}")
    except (OSError, UnicodeDecodeError) as e:
        raise PermissionFileError(f"Cannot read permission file {file_path}: {e}")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise PermissionFileError(f"Malformed JSON in {file_path}: {e}")

    if not isinstance(data, list):
        raise PermissionFileError(f"{file_path} must contain a JSON array of privilege identifiers")

    bad = [item for item in data if not isinstance(item, str)]
    if bad:
        raise PermissionFileError(f"{file_path} contains non-string entries: {bad!r}")

    return data


def import_role(
    client: Any,
    name: str,
    permission_file: Union[str, Path],
    overwrite: bool = False,
    dry_run: bool = False,
    console: Optional[Console] = None,
) -> Dict[str, Any]:
    """
    Create a role from a permission file.

    Execution order:
        1. Validate the role name (no server calls yet)
        2. Look for an existing role; stop unless overwrite is set
        3. Read and parse the permission file
        4. Resolve identifiers against the privilege catalog, warning on misses
        5. Remove the old role when overwriting, create the role, attach privileges

    Args:
        client: Connected VSphereClient
        name: Role name (letters and spaces only)
        permission_file: Path to the JSON permission file
        overwrite: Replace a role that already has this name
        dry_run: Resolve and report without changing anything on the server
        console: Console for warnings (default: a new rich Console)

    Returns:
        Dictionary with keys: name, role_id, privileges, unresolved, replaced

    Raises:
        InvalidRoleNameError: If the name has characters other than letters and spaces
        RoleExistsError: If the role exists and overwrite is not set
        PermissionFileError: If the permission file is missing or malformed
        VSphereAPIError: If the server rejects the creation or update
    """
    console = console or Console()
    validate_role_name(name)

    existing = client.get_role(name)
    if existing is not None and not overwrite:
        raise RoleExistsError(name, existing.roleId)

    privilege_ids = load_permission_file(permission_file)
    logger.debug("Loaded %d privilege identifiers from %s", len(privilege_ids), permission_file)

    resolved, unresolved = client.resolve_privileges(privilege_ids)
    render_unresolved(console, unresolved)

    result: Dict[str, Any] = {
        "name": name,
        "role_id": existing.roleId if existing is not None else None,
        "privileges": resolved,
        "unresolved": unresolved,
        "replaced": existing is not None,
    }

    if dry_run:
        logger.info("Dry run: role %s not changed", name)
        return result

    if existing is not None:
        logger.info("Removing existing role %s (id %s)", name, existing.roleId)
        client.remove_role(existing.roleId, fail_if_used=False)

    role_id = client.create_role(name)
    client.add_privileges(role_id, resolved)
    result["role_id"] = role_id
    return result


def create_inav_role(client: Any, name: str = INAV_ROLE_NAME) -> Tuple[str, List[str]]:
    """Create the Infrastructure Navigator access role.

    Returns:
        Tuple of (role name, privileges attached to the role)

    Raises:
        PrivilegeNotFoundError: If the server lacks one of the fixed privileges
        RoleExistsError: If a role with that name already exists
    """
    privileges, missing = client.resolve_privileges(INAV_PRIVILEGES)
    if missing:
        raise PrivilegeNotFoundError(missing)
    role_id = client.create_role(name)
    client.add_privileges(role_id, privileges)
    return name, client.get_role_privileges(name)


def export_role(client: Any, name: str, path: Union[str, Path]) -> List[str]:
    """Write a role's privileges to a permission file the importer accepts.

    System privileges are left out since vCenter adds them to every role.

    Raises:
        RoleNotFoundError: If no role has that name
    """
    role = client.get_role(name)
    if role is None:
        raise RoleNotFoundError(f"Role '{name}' not found")

    privileges = sorted(p for p in role.privilege if not p.startswith(SYSTEM_PRIVILEGE_PREFIX))
    Path(path).write_text(json.dumps(privileges, indent=2) + "\n", encoding="utf-8")
    return privileges
