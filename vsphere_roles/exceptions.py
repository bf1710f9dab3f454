"""Exceptions raised by the vCenter role tooling.

Kept free of pyVmomi imports so that environment checks can report a
missing client library before anything tries to load it.
"""

from typing import List, Optional


class RoleToolError(Exception):
    """Base exception for vsphere-roles."""

    pass


class ClientEnvironmentError(RoleToolError):
    """Exception raised when the pyVmomi client is missing or too old."""

    pass


class VSphereAPIError(RoleToolError):
    """Base exception for errors returned by the vCenter API."""

    pass


class VSphereConnectionError(VSphereAPIError):
    """Exception raised when connecting or logging in to vCenter fails."""

    pass


class RoleExistsError(VSphereAPIError):
    """Exception raised when a role with the requested name already exists."""

    def __init__(self, name: str, role_id: Optional[int] = None):
        super().__init__(f"Role '{name}' already exists")
        self.name = name
        self.role_id = role_id


class RoleNotFoundError(VSphereAPIError):
    """Exception raised when a role cannot be found by name or id."""

    pass


class PrivilegeNotFoundError(VSphereAPIError):
    """Exception raised when privilege identifiers are not in the catalog."""

    def __init__(self, privilege_ids: List[str]):
        super().__init__(f"Privilege(s) not found: {', '.join(privilege_ids)}")
        self.privilege_ids = privilege_ids


class InvalidRoleNameError(RoleToolError):
    """Exception raised for role names outside letters and spaces."""

    pass


class PermissionFileError(RoleToolError):
    """Exception raised when the permission file is missing or malformed."""

    pass
