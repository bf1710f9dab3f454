"""Shared fixtures: an in-memory authorization manager behind a patched SmartConnect."""

import importlib.util
import io
import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Iterable, List, Set
from unittest.mock import Mock, patch

import pytest
from pyVmomi import vim
from rich.console import Console

from vsphere_roles.api import VSphereClient

SCRIPTS_DIRECTORY = Path(__file__).parent.parent / "scripts"

CATALOG = [
    "System.Anonymous",
    "System.Read",
    "System.View",
    "Datastore.Browse",
    "VirtualMachine.Interact.AnswerQuestion",
    "VirtualMachine.Interact.ConsoleInteract",
    "VirtualMachine.Interact.GuestControl",
    "VirtualMachine.Interact.PowerOn",
    "VirtualMachine.Interact.PowerOff",
]


class FakeAuthorizationManager:
    """Stand-in for vim.AuthorizationManager with the calls the client makes."""

    def __init__(self, privileges: Iterable[str] = CATALOG):
        self.privilegeList = [
            SimpleNamespace(privId=p, name=p.rsplit(".", 1)[-1], privGroupName=p.rsplit(".", 1)[0])
            for p in privileges
        ]
        self.roleList: List[Any] = [
            SimpleNamespace(roleId=-1, name="Admin", privilege=["System.Read", "Datastore.Browse"], system=True),
        ]
        self.mutations: List[tuple] = []
        self.in_use: Set[int] = set()
        self._next_id = 100

    def add_role(self, name: str, privileges: Iterable[str] = (), in_use: bool = False) -> Any:
        role = SimpleNamespace(roleId=self._next_id, name=name, privilege=list(privileges), system=False)
        self._next_id += 1
        self.roleList.append(role)
        if in_use:
            self.in_use.add(role.roleId)
        return role

    def AddAuthorizationRole(self, name: str, privIds: List[str]) -> int:
        if any(role.name == name for role in self.roleList):
            raise vim.fault.AlreadyExists(name=name)
        self.mutations.append(("add", name, list(privIds)))
        # vCenter always puts the System.* privileges on a new role
        return self.add_role(name, ["System.Anonymous", "System.Read", "System.View", *privIds]).roleId

    def UpdateAuthorizationRole(self, roleId: int, newName: str, privIds: List[str]) -> None:
        self.mutations.append(("update", roleId, list(privIds)))
        for role in self.roleList:
            if role.roleId == roleId:
                role.name = newName
                role.privilege = list(privIds)
                return
        raise vim.fault.NotFound()

    def RemoveAuthorizationRole(self, roleId: int, failIfUsed: bool) -> None:
        if failIfUsed and roleId in self.in_use:
            raise vim.fault.RemoveFailed(msg=f"Role {roleId} is assigned to one or more permissions")
        self.in_use.discard(roleId)
        self.mutations.append(("remove", roleId, failIfUsed))
        for role in self.roleList:
            if role.roleId == roleId:
                self.roleList.remove(role)
                return
        raise vim.fault.NotFound()


@pytest.fixture
def auth_manager() -> FakeAuthorizationManager:
    return FakeAuthorizationManager()


@pytest.fixture
def mock_connect(auth_manager: FakeAuthorizationManager) -> Iterable[Mock]:
    """Patch SmartConnect/Disconnect so clients talk to auth_manager."""
    service_instance = Mock()
    service_instance.RetrieveContent.return_value.authorizationManager = auth_manager

    with patch("vsphere_roles.api.SmartConnect", return_value=service_instance) as connect, patch(
        "vsphere_roles.api.Disconnect"
    ):
        yield connect


@pytest.fixture
def client(mock_connect: Mock) -> Iterable[VSphereClient]:
    vsphere = VSphereClient("vcenter.lab.local", "administrator@vsphere.local", "secret")
    vsphere.connect()
    yield vsphere
    vsphere.disconnect()


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200)


@pytest.fixture
def permission_file(tmp_path: Path) -> Callable[[Any], Path]:
    """Write a permission file; strings are written verbatim, anything else as JSON."""

    def _write(content: Any, name: str = "role.json") -> Path:
        path = tmp_path / name
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def load_script() -> Callable[[str], Any]:
    """Import one of the scripts/ files as a module."""

    def _load(name: str) -> Any:
        spec = importlib.util.spec_from_file_location(f"script_{name}", SCRIPTS_DIRECTORY / f"{name}.py")
        assert spec is not None and spec.loader is not None
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    return _load
