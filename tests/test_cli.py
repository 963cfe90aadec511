"""Tests for CLI commands, run against an in-memory vault."""
import json
from argparse import Namespace
from unittest import mock

import pytest

from privx_toolkit.cli import main as cli
from privx_toolkit.secrets.domains import preferences
from privx_toolkit.secrets.domains.errors import VaultError
from privx_toolkit.secrets.workflows.secret_operations import PrivXSecretsClient

from conftest import FakeVault


@pytest.fixture
def vault():
    return FakeVault({
        "app": {"a": 1, "b": {"c": "x"}, "token": "aGVsbG8="},
        "prod-db": {"password": "p"},
    })


@pytest.fixture
def client(vault, monkeypatch):
    client = PrivXSecretsClient(vault, read_roles=["r"], write_roles=["w"])
    monkeypatch.setattr(cli, "_client", lambda: client)
    return client


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


class TestSecretsCommands:

    def test_get_property(self, client, capsys):
        cli.main(["secrets", "get", "app", "--property", "a"])

        assert capsys.readouterr().out.strip() == "Secret 'app/a': 1"

    def test_get_with_decoding(self, client, capsys):
        cli.main(["secrets", "get", "app", "--property", "token", "--decoding-strategy", "base64"])

        assert "hello" in capsys.readouterr().out

    def test_get_whole_secret(self, client, capsys):
        cli.main(["secrets", "get", "app"])

        assert '{"a":1,"b":{"c":"x"},"token":"aGVsbG8="}' in capsys.readouterr().out

    def test_get_unknown_strategy_is_usage_error(self, client):
        assert run(["secrets", "get", "app", "--property", "a", "--decoding-strategy", "hex"]) == 2

    def test_get_missing_property_is_runtime_error(self, client, capsys):
        assert run(["secrets", "get", "app", "--property", "zzz"]) == 1
        assert "property not found" in capsys.readouterr().err

    def test_get_map(self, client, capsys):
        cli.main(["secrets", "get-map", "app", "--property", "b"])

        assert json.loads(capsys.readouterr().out) == {"c": "x"}

    def test_list(self, client, capsys):
        cli.main(["secrets", "list", "--name-regexp", "^prod"])

        assert json.loads(capsys.readouterr().out) == {"prod-db": {"password": "p"}}

    def test_push(self, client, vault, capsys):
        cli.main(["secrets", "push", "new-secret", "--key", "k", "--value", "v"])

        assert vault.documents["new-secret"] == {"k": "dg=="}
        assert "Pushed" in capsys.readouterr().out

    def test_push_from_file(self, client, vault, tmp_path):
        value_file = tmp_path / "value.txt"
        value_file.write_text("from file")

        cli.main(["secrets", "push", "new-secret", "--key", "k", "--from-file", str(value_file)])

        assert vault.documents["new-secret"] == {"k": "ZnJvbSBmaWxl"}

    def test_delete_missing_succeeds(self, client, capsys):
        cli.main(["secrets", "delete", "nope"])

        assert "Deleted nope" in capsys.readouterr().out

    def test_exists(self, client):
        assert run(["secrets", "exists", "app"]) == 0
        assert run(["secrets", "exists", "nope"]) == 1

    def test_validate(self, client, capsys):
        cli.main(["secrets", "validate"])

        assert "Ready" in capsys.readouterr().out

    def test_validate_failure(self, client, vault, capsys):
        vault.error = VaultError("PrivX authentication failed: invalid_client", status_code=401)

        assert run(["secrets", "validate"]) == 1
        assert "invalid_client" in capsys.readouterr().err

    def test_empty_key_is_usage_error(self, client):
        assert run(["secrets", "delete", " "]) == 2


class TestGeneralCommands:

    def test_no_command_shows_help(self, capsys):
        assert run([]) == 2

    def test_secrets_without_subcommand(self, capsys):
        assert run(["secrets"]) == 2

    def test_version(self, capsys):
        cli.main(["version"])

        assert "privx-toolkit" in capsys.readouterr().out


class TestConfigCommands:

    def test_config_set_path_validates_file_exists(self, temp_home, tmp_path):
        args = Namespace(path=str(tmp_path / "nonexistent.yml"))

        with pytest.raises(SystemExit) as exc_info:
            cli.cmd_config_set_path(args)

        assert exc_info.value.code == 1

    def test_config_set_path_stores_absolute_path(self, temp_home, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("privx: {}")

        cli.cmd_config_set_path(Namespace(path=str(config_file)))

        assert preferences.get_preference("config_path") == str(config_file.resolve())

    def test_config_show_with_preference(self, temp_home, tmp_path, capsys):
        config_file = tmp_path / "config.yml"
        config_file.write_text("privx: {}")
        preferences.set_preference("config_path", str(config_file))

        cli.cmd_config_show(Namespace())

        out = capsys.readouterr().out
        assert str(config_file) in out
        assert "preference" in out.lower()

    def test_config_show_without_preference(self, temp_home, capsys):
        cli.cmd_config_show(Namespace())

        out = capsys.readouterr().out
        assert "default (file not found)" in out

    def test_config_clear_removes_preference(self, temp_home, capsys):
        preferences.set_preference("config_path", "/somewhere/config.yml")

        cli.cmd_config_clear(Namespace())

        assert preferences.get_preference("config_path") is None
        assert "cleared" in capsys.readouterr().out.lower()

    def test_config_init_points_at_existing_file(self, temp_home, tmp_path, capsys):
        config_file = tmp_path / "config.yml"
        config_file.write_text("privx: {}")

        with mock.patch("builtins.input", side_effect=["2", str(config_file)]):
            cli.cmd_config_init(Namespace())

        assert preferences.get_preference("config_path") == str(config_file.resolve())

    def test_config_init_copies_file(self, temp_home, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("privx: {}")

        with mock.patch("builtins.input", side_effect=["1", str(config_file)]):
            cli.cmd_config_init(Namespace())

        assert preferences.default_config_path().read_text() == "privx: {}"

    def test_config_init_invalid_choice(self, temp_home):
        with mock.patch("builtins.input", side_effect=["9"]):
            with pytest.raises(SystemExit) as exc_info:
                cli.cmd_config_init(Namespace())

        assert exc_info.value.code == 2
