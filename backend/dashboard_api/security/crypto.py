"""Encryption of environment credentials stored at rest.

APP_ENCRYPTION_KEY may hold several comma-separated keys to support rotation:
the first key seals new values, every key is tried when opening old ones.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import json
from functools import lru_cache
from typing import Any, List

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from dashboard_api.config import get_settings

DEV_SEED = "forecast-compare-dev"


def _normalize_key(raw_key: str | None) -> bytes:
    """Accept either a valid Fernet key or any string and derive a stable key."""
    if raw_key:
        trimmed = raw_key.strip()
        if trimmed:
            try:
                decoded = base64.urlsafe_b64decode(trimmed)
                if len(decoded) == 32:
                    return trimmed.encode("utf-8")
            except (ValueError, binascii.Error):
                pass
            digest = hashlib.sha256(trimmed.encode("utf-8")).digest()
            return base64.urlsafe_b64encode(digest)
    digest = hashlib.sha256(DEV_SEED.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def _split_keys(raw: str | None) -> List[str | None]:
    if not raw:
        return [None]
    keys = [k for k in (part.strip() for part in raw.split(",")) if k]
    return keys or [None]


@lru_cache
def _get_cipher() -> MultiFernet:
    settings = get_settings()
    return MultiFernet([Fernet(_normalize_key(k)) for k in _split_keys(settings.APP_ENCRYPTION_KEY)])


def seal_credentials(value: Any) -> str:
    """Serialize a credential payload (service-account dict or plain secret) and encrypt it."""
    token = _get_cipher().encrypt(json.dumps(value).encode("utf-8"))
    return token.decode("utf-8")


def open_credentials(token: str) -> Any:
    """Decrypt payloads produced by `seal_credentials`."""
    data = _get_cipher().decrypt(token.encode("utf-8"))
    return json.loads(data.decode("utf-8"))


def try_open_credentials(token: str) -> Any | None:
    """Best-effort decryption that returns None if no configured key opens the token."""
    try:
        return open_credentials(token)
    except InvalidToken:
        return None


def rotate_token(token: str) -> str:
    """Re-encrypt a sealed value under the primary key."""
    return _get_cipher().rotate(token.encode("utf-8")).decode("utf-8")


def reset_crypto_state() -> None:
    """Clear the cached cipher (used by tests when env changes)."""
    _get_cipher.cache_clear()
