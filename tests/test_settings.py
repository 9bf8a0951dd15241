import logging
import pickle

import pytest

from oaiwrap.client import OpenAIClient
from oaiwrap.core.credentials import CredentialStore
from oaiwrap.core.errors import AuthenticationMissing, ValidationFailed
from oaiwrap.core.settings import Settings
from oaiwrap.utils.logging import get_logger, set_log_level


def test_settings_defaults():
    settings = Settings()
    assert settings.model == "gpt-4o-mini"
    assert settings.max_tokens == 1000
    assert settings.temperature == 0.7
    assert settings.poll_interval == 2.0
    assert settings.max_wait == 60.0
    assert settings.throttle_limit == 5


@pytest.mark.parametrize(
    "values",
    [
        {"temperature": 2.5},
        {"max_tokens": 0},
        {"timeout_seconds": 0.5},
        {"poll_interval": 20},
        {"max_wait": 5},
        {"throttle_limit": 11},
        {"unknown": True},
    ],
)
def test_settings_create_rejects_invalid_values(values):
    with pytest.raises(ValidationFailed):
        Settings.create(**values)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("OAIWRAP_MODEL", "gpt-4.1-mini")
    monkeypatch.setenv("OAIWRAP_MAX_TOKENS", "256")
    monkeypatch.setenv("OAIWRAP_TEMPERATURE", "0.2")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:8080/v1")
    settings = Settings.from_env()
    assert settings.model == "gpt-4.1-mini"
    assert settings.max_tokens == 256
    assert settings.temperature == 0.2
    assert settings.base_url == "http://localhost:8080/v1"


def test_settings_updated_returns_validated_copy():
    settings = Settings()
    changed = settings.updated(temperature=1.5)
    assert changed.temperature == 1.5
    assert settings.temperature == 0.7
    with pytest.raises(ValidationFailed):
        settings.updated(temperature=-1)
    with pytest.raises(ValidationFailed):
        settings.updated(colour="blue")


def test_client_configure_applies_settings():
    client = OpenAIClient("sk-test", use_env=False)
    client.configure(model="gpt-4o", throttle_limit=8)
    assert client.settings.model == "gpt-4o"
    assert client.chat.settings.throttle_limit == 8
    with pytest.raises(ValidationFailed):
        client.configure(throttle_limit=0)
    assert client.settings.throttle_limit == 8


def test_credential_store_reads_environment_once(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("OPENAI_ORG_ID", "org-env")
    store = CredentialStore()
    credential = store.require()
    assert credential.token.get_secret_value() == "sk-env"
    assert credential.organization == "org-env"
    monkeypatch.setenv("OPENAI_API_KEY", "sk-changed")
    assert store.require() is credential


def test_credential_store_without_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    store = CredentialStore()
    assert not store.is_configured
    with pytest.raises(AuthenticationMissing):
        store.require()
    with pytest.raises(AuthenticationMissing):
        store.set("   ")


def test_credential_set_swaps_snapshot_and_masks_token():
    store = CredentialStore(use_env=False)
    first = store.set("sk-secret-1")
    second = store.set("sk-secret-2", "org-9")
    assert first is not second
    assert store.get() is second
    assert "sk-secret" not in repr(second)
    assert "org-9" in repr(second)
    with pytest.raises(TypeError):
        pickle.dumps(second)
    store.clear()
    assert store.get() is None


def test_loggers_share_package_root():
    logger = get_logger("custom.module")
    assert logger.name == "oaiwrap.custom.module"
    assert get_logger("oaiwrap.core").name == "oaiwrap.core"
    root = logging.getLogger("oaiwrap")
    try:
        set_log_level("debug")
        assert root.level == logging.DEBUG
        set_log_level(logging.ERROR)
        assert root.level == logging.ERROR
        with pytest.raises(ValueError):
            set_log_level("chatty")
    finally:
        set_log_level("warning")
