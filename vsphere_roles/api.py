"""vCenter API client for role and privilege management."""

import logging
import ssl
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vim, vmodl

from .config import VSPHERE_PORT, VSPHERE_TIMEOUT
from .exceptions import (
    RoleExistsError,
    RoleNotFoundError,
    VSphereAPIError,
    VSphereConnectionError,
)

logger = logging.getLogger(__name__)


def build_ssl_context(insecure: bool = False) -> ssl.SSLContext:
    """Build the SSL context used for a single vCenter connection.

    Args:
        insecure: Skip certificate and hostname verification (lab and
            self-signed deployments only)

    Returns:
        A new SSLContext; verification stays enabled unless insecure is set
    """
    context = ssl.create_default_context()
    if insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class VSphereClient:
    """Client for the vCenter authorization manager using pyVmomi."""

    def __init__(
        self,
        target: str,
        user: str,
        password: str,
        port: int = VSPHERE_PORT,
        timeout: int = VSPHERE_TIMEOUT,
        insecure: bool = False,
    ):
        """Initialize the vCenter API client.

        Args:
            target: Address or FQDN of the vCenter server
            user: User name to log in with
            password: Password for the user
            port: HTTPS port of the vCenter API (default: 443)
            timeout: HTTP connection timeout in seconds (default: 30)
            insecure: Disable TLS verification for this connection only
        """
        self.target = target
        self.user = user
        self.port = port
        self.timeout = timeout
        self.insecure = insecure
        self._password = password
        self._si: Any = None

    def __enter__(self) -> "VSphereClient":
        if not self.is_connected:
            self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self._si is not None

    def connect(self) -> "VSphereClient":
        """Log in to vCenter.

        Returns:
            The connected client

        Raises:
            VSphereConnectionError: If the server cannot be reached or the login fails
        """
        logger.debug("Connecting to %s:%s as %s (insecure=%s)", self.target, self.port, self.user, self.insecure)
        try:
            self._si = SmartConnect(
                host=self.target,
                user=self.user,
                pwd=self._password,
                port=self.port,
                sslContext=build_ssl_context(self.insecure),
                httpConnectionTimeout=self.timeout,
            )
        except vmodl.MethodFault as e:
            raise VSphereConnectionError(f"Could not connect to {self.target}: {e.msg or e}") from e
        except Exception as e:
            # pyVim raises a plain Exception when the endpoint is not a VIM server
            raise VSphereConnectionError(f"Could not connect to {self.target}: {e}") from e
        logger.info("Connected to %s", self.target)
        return self

    def disconnect(self) -> None:
        """Log out of vCenter. Calling it on a closed client does nothing."""
        if self._si is None:
            return
        try:
            Disconnect(self._si)
        finally:
            self._si = None
        logger.info("Disconnected from %s", self.target)

    @property
    def _auth(self) -> Any:
        if self._si is None:
            raise VSphereConnectionError(f"Not connected to {self.target}")
        return self._si.RetrieveContent().authorizationManager

    # Roles

    def list_roles(self) -> List[Any]:
        """Fetch all roles defined on the server.

        Returns:
            List of vim.AuthorizationManager.Role objects
        """
        return list(self._auth.roleList)

    def get_role(self, name: str) -> Optional[Any]:
        """Find a role by name.

        Args:
            name: Role name (exact match)

        Returns:
            The role, or None if no role has that name
        """
        for role in self._auth.roleList:
            if role.name == name:
                return role
        return None

    def role_exists(self, name: str) -> bool:
        return self.get_role(name) is not None

    def _get_role_by_id(self, role_id: int) -> Any:
        for role in self._auth.roleList:
            if role.roleId == role_id:
                return role
        raise RoleNotFoundError(f"Role with id {role_id} not found")

    def create_role(self, name: str, privilege_ids: Iterable[str] = ()) -> int:
        """Create a role.

        Args:
            name: Name of the new role
            privilege_ids: Privileges to put on the role at creation time

        Returns:
            Id of the created role

        Raises:
            RoleExistsError: If a role with that name already exists
            VSphereAPIError: If the server rejects the name or privileges
        """
        try:
            role_id = self._auth.AddAuthorizationRole(name=name, privIds=list(privilege_ids))
        except vim.fault.AlreadyExists:
            raise RoleExistsError(name)
        except (vim.fault.InvalidName, vmodl.fault.InvalidArgument) as e:
            raise VSphereAPIError(f"Failed to create role '{name}': {e.msg}")
        logger.info("Created role %s (id %s)", name, role_id)
        return role_id

    def add_privileges(self, role_id: int, privilege_ids: Iterable[str]) -> List[str]:
        """Attach privileges to a role, keeping the ones it already has.

        Args:
            role_id: Id of the role to update
            privilege_ids: Privilege identifiers to attach

        Returns:
            The full privilege list sent to the server

        Raises:
            RoleNotFoundError: If the role does not exist
            VSphereAPIError: If the server rejects the update
        """
        role = self._get_role_by_id(role_id)
        privileges = list(role.privilege)
        for privilege_id in privilege_ids:
            if privilege_id not in privileges:
                privileges.append(privilege_id)

        try:
            self._auth.UpdateAuthorizationRole(roleId=role_id, newName=role.name, privIds=privileges)
        except (vim.fault.NotFound, vmodl.fault.InvalidArgument) as e:
            raise VSphereAPIError(f"Failed to update role '{role.name}': {e.msg}")
        logger.debug("Role %s now holds %d privileges", role.name, len(privileges))
        return privileges

    def remove_role(self, role_id: int, fail_if_used: bool = True) -> None:
        """Delete a role.

        Args:
            role_id: Id of the role to delete
            fail_if_used: Refuse to delete a role that is still assigned

        Raises:
            RoleNotFoundError: If the role does not exist
            VSphereAPIError: If the role is in use and fail_if_used is set
        """
        try:
            self._auth.RemoveAuthorizationRole(roleId=role_id, failIfUsed=fail_if_used)
        except vim.fault.NotFound:
            raise RoleNotFoundError(f"Role with id {role_id} not found")
        except (vim.fault.RemoveFailed, vmodl.fault.InvalidArgument) as e:
            raise VSphereAPIError(f"Failed to remove role {role_id}: {e.msg}")
        logger.info("Removed role id %s", role_id)

    def get_role_privileges(self, name: str) -> List[str]:
        """Fetch the privileges attached to a role.

        Raises:
            RoleNotFoundError: If no role has that name
        """
        role = self.get_role(name)
        if role is None:
            raise RoleNotFoundError(f"Role '{name}' not found")
        return sorted(role.privilege)

    # Privileges

    def get_privilege_catalog(self) -> Dict[str, Any]:
        """Map every privilege id known to the server to its catalog entry."""
        return {privilege.privId: privilege for privilege in self._auth.privilegeList}

    def resolve_privileges(self, privilege_ids: Iterable[str]) -> Tuple[List[str], List[str]]:
        """Split privilege identifiers into the ones the server knows and the rest.

        Duplicates collapse to their first occurrence; input order is kept.

        Args:
            privilege_ids: Privilege identifiers to look up

        Returns:
            Tuple of (resolved, missing) identifier lists
        """
        catalog = self.get_privilege_catalog()
        resolved: List[str] = []
        missing: List[str] = []
        for privilege_id in dict.fromkeys(privilege_ids):
            if privilege_id in catalog:
                resolved.append(privilege_id)
            else:
                missing.append(privilege_id)
        return resolved, missing


class SessionRegistry:
    """Keeps at most one connected client per vCenter target.

    The registry is passed explicitly to whatever needs a session; a second
    request for the same target returns the client already connected.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, VSphereClient] = {}

    def __enter__(self) -> "SessionRegistry":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close_all()

    def __contains__(self, target: str) -> bool:
        client = self._sessions.get(target)
        return client is not None and client.is_connected

    def connect(self, target: str, user: str, password: str, **options: Any) -> VSphereClient:
        """Return the live client for target, connecting if needed.

        Args:
            target: Address or FQDN of the vCenter server
            user: User name to log in with
            password: Password for the user
            **options: Extra VSphereClient options (port, timeout, insecure)

        Raises:
            VSphereConnectionError: If a new connection cannot be made
        """
        client = self._sessions.get(target)
        if client is not None and client.is_connected:
            logger.debug("Reusing session for %s", target)
            return client

        client = VSphereClient(target, user, password, **options)
        client.connect()
        self._sessions[target] = client
        return client

    def close_all(self) -> None:
        for target in list(self._sessions):
            self._sessions.pop(target).disconnect()
