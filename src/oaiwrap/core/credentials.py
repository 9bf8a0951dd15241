"""In-memory credential store.

The store holds a single immutable :class:`Credential` snapshot.  Setting a
new key swaps the reference; readers only ever see a complete snapshot, so
the read path needs no locking.  Nothing here writes to disk.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from pydantic import SecretStr

from .errors import AuthenticationMissing
from ..utils.logging import get_logger

logger = get_logger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"
ORGANIZATION_ENVS = ("OPENAI_ORG_ID", "OPENAI_ORGANIZATION")


@dataclass(frozen=True)
class Credential:
    """Bearer token plus optional organization id."""

    token: SecretStr
    organization: Optional[str] = None

    def __repr__(self) -> str:
        org = f", organization={self.organization!r}" if self.organization else ""
        return f"Credential(token=SecretStr('**********'){org})"

    def __reduce__(self):
        raise TypeError("Credential objects cannot be serialised")


class CredentialStore:
    """Holds the active credential for one client."""

    def __init__(self, credential: Optional[Credential] = None, *, use_env: bool = True):
        self._credential = credential
        self._use_env = use_env
        self._env_checked = credential is not None

    def set(self, token: str, organization: Optional[str] = None) -> Credential:
        token = (token or "").strip()
        if not token:
            raise AuthenticationMissing("An empty API key cannot be stored.")
        credential = Credential(SecretStr(token), (organization or "").strip() or None)
        self._credential = credential
        self._env_checked = True
        logger.debug("API key updated (organization=%s)", credential.organization)
        return credential

    def clear(self) -> None:
        self._credential = None
        self._env_checked = True

    def load_from_env(self) -> Optional[Credential]:
        """Populate the store from the environment if it is still empty."""

        self._env_checked = True
        if self._credential is not None:
            return self._credential
        token = os.getenv(API_KEY_ENV)
        if not token:
            return None
        organization = None
        for name in ORGANIZATION_ENVS:
            organization = os.getenv(name)
            if organization:
                break
        self._credential = Credential(SecretStr(token.strip()), organization or None)
        logger.debug("Loaded API key from %s", API_KEY_ENV)
        return self._credential

    def get(self) -> Optional[Credential]:
        if self._credential is None and self._use_env and not self._env_checked:
            return self.load_from_env()
        return self._credential

    def require(self) -> Credential:
        credential = self.get()
        if credential is None or not credential.token.get_secret_value():
            raise AuthenticationMissing(
                f"No API key configured. Set {API_KEY_ENV} or call OpenAIClient.set_api_key()."
            )
        return credential

    @property
    def is_configured(self) -> bool:
        return self.get() is not None
