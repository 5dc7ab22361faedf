# tests/unit/test_secrets_sources.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest
from keyring.errors import KeyringError

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from chatbridge.secrets.sources import (
    SecretsResolver,
    build_secret_sources,
)


def test_method_string_and_list(monkeypatch):
    # exact env var name via mapping
    monkeypatch.setenv("GROQ_API_KEY", "gsk-env")
    r1 = SecretsResolver(method="env", mapping={"groq": {"api_key": "GROQ_API_KEY"}})
    assert r1.secret("groq") == "gsk-env"

    # service name -> derived env var
    r2 = SecretsResolver(method=["env"], mapping={"groq": {"api_key": "groq"}})
    assert r2.secret("groq") == "gsk-env"

    # no mapping -> provider name is the service
    r3 = SecretsResolver(method="env")
    assert r3.secret("groq") == "gsk-env"


def test_missing_secret_is_none(monkeypatch):
    monkeypatch.delenv("NOPE_API_KEY", raising=False)
    monkeypatch.delenv("NOPE", raising=False)
    assert SecretsResolver(method="env").secret("nope") is None


def test_unknown_method_raises():
    with pytest.raises(ValueError):
        build_secret_sources("nope")


def test_keyring_then_env(monkeypatch):
    # Prepare env fallback
    monkeypatch.setenv("GROQ_API_KEY", "gsk-from-env")

    # Fake keyring that returns a value first
    class FakeKeyring:
        def get_credential(self, service, _):
            class Cred:
                password = "gsk-from-keyring"
            return Cred()
        def get_password(self, *args, **kwargs):
            return None

    import chatbridge.secrets.sources as src
    monkeypatch.setattr(src, "_keyring", FakeKeyring(), raising=True)

    r = SecretsResolver(method=["keyring", "env"], mapping={"groq": {"api_key": "groq"}})
    assert r.secret("groq") == "gsk-from-keyring"

    # Now make keyring miss -> env wins
    class KR2:
        def get_credential(self, *_): return None
        def get_password(self, *_): return None
    monkeypatch.setattr(src, "_keyring", KR2(), raising=True)

    r2 = SecretsResolver(method=["keyring", "env"], mapping={"groq": {"api_key": "groq"}})
    assert r2.secret("groq") == "gsk-from-env"


def test_keyring_backend_failure_falls_through(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-from-env")

    class Broken:
        def get_credential(self, *_): raise KeyringError("no backend")
        def get_password(self, *_): raise KeyringError("no backend")

    import chatbridge.secrets.sources as src
    monkeypatch.setattr(src, "_keyring", Broken(), raising=True)

    r = SecretsResolver(method=["keyring", "env"])
    assert r.secret("groq") == "gsk-from-env"
