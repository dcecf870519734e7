"""Shared fixtures and in-memory collaborators for the ksecret test suite."""
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from ksecret.secrets.domains.cache import SecretCache
from ksecret.secrets.domains.k8s_client import MANAGED_LABELS
from ksecret.secrets.domains.models import Config, SecretInfo


class FakeSecretManager:
    """In-memory stand-in for GCPSecretClient that records every call."""

    def __init__(self, values=None):
        self.values = dict(values or {})
        self.calls = []
        self.fail_on_get = {}

    def list_secrets(self, environment):
        self.calls.append(("list", environment))
        return [SecretInfo(name=name, environment=environment) for name in self.values]

    def get_secret(self, environment, name, version="latest"):
        self.calls.append(("get", environment, name))
        if name in self.fail_on_get:
            raise self.fail_on_get[name]
        return self.values[name]

    def set_secret(self, environment, name, value):
        self.calls.append(("set", environment, name))
        self.values[name] = value

    def delete_secret(self, environment, name):
        self.calls.append(("delete", environment, name))
        self.values.pop(name, None)


class FakeCluster:
    """In-memory stand-in for KubeClient holding secrets per namespace."""

    def __init__(self, namespaces=("dev",)):
        self.namespaces = set(namespaces)
        self.secrets = {}
        self.calls = []
        self.fail_on_apply = {}

    def namespace_exists(self, namespace):
        self.calls.append(("namespace_exists", namespace))
        return namespace in self.namespaces

    def delete_secret(self, namespace, name):
        self.calls.append(("delete", namespace, name))
        return self.secrets.pop((namespace, name), None) is not None

    def create_secret(self, namespace, name, labels, fields):
        self.calls.append(("create", namespace, name))
        self.secrets[(namespace, name)] = {"labels": dict(labels), "data": dict(fields)}

    def apply_secret(self, namespace, name, fields):
        if name in self.fail_on_apply:
            self.calls.append(("apply-failed", namespace, name))
            raise self.fail_on_apply[name]
        self.delete_secret(namespace, name)
        self.create_secret(namespace, name, MANAGED_LABELS, fields)

    def write_calls(self):
        return [c for c in self.calls if c[0] in ("delete", "create")]


class FakeClock:
    """Settable clock for cache expiry tests."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def config():
    return Config(gcp_project_id="test-project", secret_prefix="k8s")


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    monkeypatch.delenv("KSECRET_CONFIG_FILE", raising=False)
    monkeypatch.delenv("KSECRET_CACHE_FILE", raising=False)
    monkeypatch.delenv("KSECRET_GCP_PROJECT", raising=False)
    return fake_home


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock):
    return SecretCache(path=tmp_path / "cache.json", clock=clock)


@pytest.fixture
def remote():
    return FakeSecretManager()


@pytest.fixture
def cluster():
    return FakeCluster()
