import subprocess

import pytest

from whmcsinstaller.errors import CommandError, ProvisioningError
from whmcsinstaller.services.database import DatabaseProvisioner


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class FakeGenerator:
    def generate(self, length):
        return "X" * length


class FakeRunner:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def run(self, cmd, check=True, capture_output=False, input_text=None, **_kwargs):
        self.calls.append({"cmd": cmd, "input": input_text})
        if self.fail:
            raise CommandError("ERROR 1044 (42000): Access denied")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")


def _provisioner(runner, **kwargs):
    return DatabaseProvisioner(
        logger=DummyLogger(),
        command_runner=runner,
        credential_generator=FakeGenerator(),
        **kwargs,
    )


def test_create_sends_sql_on_stdin_with_connection_limit():
    runner = FakeRunner()
    credentials = _provisioner(runner, defaults_file="/root/.my.cnf").create(
        "webapps", "billing.example.com", 15
    )

    assert credentials.database == "webapps_billing_example_xxxx"
    assert credentials.username == credentials.database[:32]
    assert credentials.password == "X" * 16
    assert credentials.connection_limit == 15

    call = runner.calls[0]
    assert call["cmd"] == ["mysql", "--defaults-extra-file=/root/.my.cnf", "--batch"]
    assert credentials.password not in " ".join(call["cmd"])
    assert "WITH MAX_USER_CONNECTIONS 15" in call["input"]
    assert f"CREATE DATABASE `{credentials.database}` CHARACTER SET utf8;" in call["input"]
    assert f"GRANT ALL PRIVILEGES ON `{credentials.database}`.*" in call["input"]


def test_create_wraps_command_failures():
    with pytest.raises(ProvisioningError, match="Access denied"):
        _provisioner(FakeRunner(fail=True)).create("webapps", "example.com", 15)


def test_remote_host_grants_any_host():
    runner = FakeRunner()
    credentials = _provisioner(runner, host="db.internal").create("webapps", "example.com", 20)

    assert credentials.hostname == "db.internal"
    assert f"'{credentials.username}'@'%'" in runner.calls[0]["input"]


def test_drop_removes_database_and_user():
    runner = FakeRunner()

    assert _provisioner(runner).drop("webapps_example", "webapps_example") is True
    assert "DROP DATABASE IF EXISTS `webapps_example`;" in runner.calls[0]["input"]
    assert "DROP USER IF EXISTS 'webapps_example'@'localhost';" in runner.calls[0]["input"]


def test_drop_reports_failure_without_raising():
    assert _provisioner(FakeRunner(fail=True)).drop("webapps_example", "webapps_example") is False


def test_drop_rejects_unsafe_identifiers():
    with pytest.raises(ProvisioningError, match="unsafe"):
        _provisioner(FakeRunner()).drop("db`; DROP DATABASE mysql; --", "user")


def test_enabled_requires_mysql_client(monkeypatch):
    monkeypatch.setattr("whmcsinstaller.services.database.shutil.which", lambda _name: None)

    assert _provisioner(FakeRunner()).enabled() is False
    assert _provisioner(FakeRunner(), enabled=False).enabled() is False
