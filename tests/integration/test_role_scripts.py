"""Integration tests running the role scripts end to end against a fake vCenter."""

import io
import json
from unittest.mock import Mock, patch

import pytest
from rich.console import Console

from vsphere_roles.exceptions import ClientEnvironmentError


@pytest.fixture
def run_script(load_script, mock_connect):
    """Load a script, silence its console and run main() with the given argv."""

    def _run(name, argv):
        module = load_script(name)
        output = Console(file=io.StringIO(), width=200)
        with patch.object(module, "console", output), patch.object(
            module, "prompt_password", return_value="secret"
        ), patch("vsphere_roles.config.check_client_version", return_value="8.0.3.0"):
            exit_code = module.main(module.parse_args(argv))
        return exit_code, output.file.getvalue()

    return _run


class TestImportRoleScript:
    """Test scripts/import_role.py."""

    def test_import_success(self, run_script, auth_manager, permission_file) -> None:
        path = permission_file(["Datastore.Browse", "Bogus.Privilege"])

        exit_code, output = run_script(
            "import_role", ["--name", "Backup Operator", "--permission-file", str(path), "--target", "vc.lab"]
        )

        assert exit_code == 0
        assert "Bogus.Privilege" in output
        assert "Created role" in output
        role = next(r for r in auth_manager.roleList if r.name == "Backup Operator")
        assert "Datastore.Browse" in role.privilege

    def test_missing_required_arguments(self, load_script) -> None:
        module = load_script("import_role")

        with pytest.raises(SystemExit):
            module.parse_args(["--name", "Operators"])

    def test_invalid_name_never_connects(self, run_script, mock_connect: Mock, permission_file) -> None:
        path = permission_file(["Datastore.Browse"])

        exit_code, output = run_script(
            "import_role", ["-n", "Bad_Name", "-f", str(path), "-t", "vc.lab"]
        )

        assert exit_code == 1
        assert "Invalid role name" in output
        mock_connect.assert_not_called()

    def test_existing_role(self, run_script, auth_manager, permission_file) -> None:
        auth_manager.add_role("Operators")

        exit_code, output = run_script(
            "import_role", ["-n", "Operators", "-f", str(permission_file([])), "-t", "vc.lab"]
        )

        assert exit_code == 1
        assert "already exists" in output
        assert "--overwrite" in output
        assert auth_manager.mutations == []

    def test_overwrite(self, run_script, auth_manager, permission_file) -> None:
        auth_manager.add_role("Operators", ["Datastore.Browse"])
        path = permission_file(["VirtualMachine.Interact.PowerOn"])

        exit_code, output = run_script(
            "import_role", ["-n", "Operators", "-f", str(path), "-t", "vc.lab", "--overwrite"]
        )

        assert exit_code == 0
        assert "Replaced role" in output

    def test_malformed_file(self, run_script, auth_manager, permission_file) -> None:
        exit_code, output = run_script(
            "import_role", ["-n", "Operators", "-f", str(permission_file("[oops")), "-t", "vc.lab"]
        )

        assert exit_code == 1
        assert "Malformed JSON" in output
        assert auth_manager.mutations == []

    def test_dry_run(self, run_script, auth_manager, permission_file) -> None:
        exit_code, output = run_script(
            "import_role",
            ["-n", "Operators", "-f", str(permission_file(["Datastore.Browse"])), "-t", "vc.lab", "--dry-run"],
        )

        assert exit_code == 0
        assert "no changes were made" in output
        assert auth_manager.mutations == []

    def test_connection_failure(self, run_script, mock_connect: Mock, permission_file) -> None:
        mock_connect.side_effect = OSError("Name or service not known")

        exit_code, output = run_script(
            "import_role", ["-n", "Operators", "-f", str(permission_file([])), "-t", "vc.lab"]
        )

        assert exit_code == 1
        assert "Could not connect to vc.lab" in output

    def test_endpoint_is_not_vcenter(self, run_script, mock_connect: Mock, permission_file) -> None:
        mock_connect.side_effect = Exception("vc.lab:443 is down or is not a VIM server")

        exit_code, output = run_script(
            "import_role", ["-n", "Operators", "-f", str(permission_file([])), "-t", "vc.lab"]
        )

        assert exit_code == 1
        assert "Could not connect to vc.lab" in output
        assert "is not a VIM server" in output

    def test_bracketed_privilege_ids(self, run_script, auth_manager, permission_file) -> None:
        path = permission_file(["Datastore.Browse", "Bogus[/bold]Id"])

        exit_code, output = run_script("import_role", ["-n", "Operators", "-f", str(path), "-t", "vc.lab"])

        assert exit_code == 0
        assert "Bogus[/bold]Id" in output
        assert any(r.name == "Operators" for r in auth_manager.roleList)

    def test_overwrite_assigned_role(self, run_script, auth_manager, permission_file) -> None:
        auth_manager.add_role("Operators", ["Datastore.Browse"], in_use=True)
        path = permission_file(["VirtualMachine.Interact.PowerOn"])

        exit_code, output = run_script(
            "import_role", ["-n", "Operators", "-f", str(path), "-t", "vc.lab", "--overwrite"]
        )

        assert exit_code == 0
        assert "Replaced role" in output

    def test_session_closed(self, run_script, permission_file) -> None:
        with patch("vsphere_roles.api.Disconnect") as mock_disconnect:
            exit_code, _ = run_script(
                "import_role", ["-n", "Operators", "-f", str(permission_file([])), "-t", "vc.lab"]
            )

        assert exit_code == 0
        mock_disconnect.assert_called_once()

    def test_client_environment_error(self, load_script, mock_connect: Mock, permission_file) -> None:
        module = load_script("import_role")
        output = Console(file=io.StringIO(), width=200)
        args = module.parse_args(["-n", "Operators", "-f", str(permission_file([])), "-t", "vc.lab"])

        with patch.object(module, "console", output), patch(
            "vsphere_roles.config.check_client_version",
            side_effect=ClientEnvironmentError("pyvmomi is not installed"),
        ):
            assert module.main(args) == 1

        assert "pyvmomi is not installed" in output.file.getvalue()
        mock_connect.assert_not_called()

    def test_insecure_flag(self, run_script, mock_connect: Mock, permission_file) -> None:
        run_script(
            "import_role",
            ["-n", "Operators", "-f", str(permission_file([])), "-t", "vc.lab", "--insecure", "--dry-run"],
        )

        assert mock_connect.call_args.kwargs["sslContext"].check_hostname is False


class TestCreateInavRoleScript:
    """Test scripts/create_inav_role.py."""

    def test_create_default(self, run_script, auth_manager) -> None:
        exit_code, output = run_script("create_inav_role", ["--target", "vc.lab"])

        assert exit_code == 0
        assert "InfrastructureNavigator-Access" in output
        assert "VirtualMachine.Interact.ConsoleInteract" in output
        assert any(r.name == "InfrastructureNavigator-Access" for r in auth_manager.roleList)

    def test_create_twice(self, run_script) -> None:
        assert run_script("create_inav_role", ["-t", "vc.lab"])[0] == 0

        exit_code, output = run_script("create_inav_role", ["-t", "vc.lab"])

        assert exit_code == 1
        assert "already exists" in output


class TestExportRoleScript:
    """Test scripts/export_role.py."""

    def test_export(self, run_script, auth_manager, tmp_path) -> None:
        auth_manager.add_role("Operators", ["System.View", "Datastore.Browse"])
        path = tmp_path / "operators.json"

        exit_code, _ = run_script("export_role", ["-n", "Operators", "-o", str(path), "-t", "vc.lab"])

        assert exit_code == 0
        assert json.loads(path.read_text(encoding="utf-8")) == ["Datastore.Browse"]

    def test_export_missing_role(self, run_script, tmp_path) -> None:
        exit_code, output = run_script("export_role", ["-n", "Nobody", "-o", str(tmp_path / "x.json"), "-t", "vc.lab"])

        assert exit_code == 1
        assert "not found" in output
