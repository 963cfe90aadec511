"""Shared fixtures: an in-memory PrivX vault and a temporary home directory."""
from pathlib import Path

import pytest

from privx_toolkit.secrets.domains import preferences
from privx_toolkit.secrets.domains.errors import VaultError
from privx_toolkit.secrets.domains.models import SecretDocument, SecretPage


class FakeVault:
    """Stand-in for PrivXVault that keeps documents in a dict and records calls."""

    def __init__(self, documents=None):
        self.documents = dict(documents or {})
        self.list_calls = []
        self.get_calls = []
        self.created = []
        self.deleted = []
        self.fail_list_at = None
        self.error = None

    def get_document(self, name):
        self.get_calls.append(name)
        if self.error is not None:
            raise self.error
        if name not in self.documents:
            raise VaultError("Secret not found", status_code=404)
        return SecretDocument(name=name, data=self.documents[name])

    def list_documents(self, offset, limit):
        self.list_calls.append((offset, limit))
        if self.fail_list_at is not None and offset >= self.fail_list_at:
            raise VaultError("connection reset by peer")
        names = sorted(self.documents)[offset:offset + limit]
        return SecretPage(items=[SecretDocument(name=n) for n in names], count=len(names))

    def create_or_replace_document(self, name, read_roles, write_roles, fields):
        if self.error is not None:
            raise self.error
        self.created.append((name, list(read_roles), list(write_roles), fields))
        self.documents[name] = dict(fields)

    def delete_document(self, name):
        if self.error is not None:
            raise self.error
        if name not in self.documents:
            raise VaultError("secret not found", status_code=404)
        self.deleted.append(name)
        del self.documents[name]


@pytest.fixture
def fake_vault():
    return FakeVault({"app": {"a": 1, "b": {"c": "x"}}})


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Temporary home directory with preferences redirected into it."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    monkeypatch.delenv("PRIVX_SERVER", raising=False)

    fake_config_dir = fake_home / ".config" / "privx-toolkit"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")

    return fake_home
