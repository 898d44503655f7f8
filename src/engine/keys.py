"""Opaque key and identifier generation.

Push keys and admin tokens are URL-safe base64 strings, record ids are hex.
All values carry a type prefix so a key can be recognised before any store
lookup is attempted.
"""

import re
import secrets
from enum import Enum


class KeyPrefix(str, Enum):
    """Prefixes for every generated identifier."""

    ADMIN_TOKEN = "AT_"
    PUSH_KEY = "APK"
    CHANNEL = "ch_"
    TARGET = "app_"
    RECIPIENT = "oid_"
    MESSAGE = "msg_"
    PUSH = "push_"


_KEY_CHARSET = re.compile(r"^[A-Za-z0-9_-]+$")
_HEX_CHARSET = re.compile(r"^[0-9a-f]+$")

# Minimum total lengths (prefix included)
MIN_PUSH_KEY_LENGTH = 32
MIN_ADMIN_TOKEN_LENGTH = 35
RECORD_ID_HEX_LENGTH = 16


def _url_safe(nbytes: int) -> str:
    return secrets.token_urlsafe(nbytes)


def new_push_key() -> str:
    """Generate a push key: ``APK`` + 29 URL-safe chars (32 total, 174 bits)."""
    return f"{KeyPrefix.PUSH_KEY.value}{_url_safe(24)[:29]}"


def new_admin_token() -> str:
    """Generate an admin token: ``AT_`` + 32 URL-safe chars (192 bits)."""
    return f"{KeyPrefix.ADMIN_TOKEN.value}{_url_safe(24)}"


def new_record_id(prefix: KeyPrefix | str) -> str:
    """Generate an internal record id: prefix + 16 hex chars."""
    prefix = prefix.value if isinstance(prefix, KeyPrefix) else prefix
    return f"{prefix}{secrets.token_hex(RECORD_ID_HEX_LENGTH // 2)}"


def new_push_id() -> str:
    """Generate a push id: ``push_`` + 24 hex chars (96 bits)."""
    return f"{KeyPrefix.PUSH.value}{secrets.token_hex(12)}"


def new_state_token() -> str:
    """Generate an OAuth state token (128 bits, hex)."""
    return secrets.token_hex(16)


def new_id(prefix: KeyPrefix | str) -> str:
    """Generate an identifier appropriate for ``prefix``.

    Push keys and admin tokens use the long URL-safe form, everything else
    uses the hex record-id form.
    """
    prefix_value = prefix.value if isinstance(prefix, KeyPrefix) else prefix
    if prefix_value == KeyPrefix.PUSH_KEY.value:
        return new_push_key()
    if prefix_value == KeyPrefix.ADMIN_TOKEN.value:
        return new_admin_token()
    if prefix_value == KeyPrefix.PUSH.value:
        return new_push_id()
    return new_record_id(prefix_value)


def is_valid(prefix: KeyPrefix | str, value: str | None) -> bool:
    """Check prefix, minimum length and character class of ``value``.

    Args:
        prefix: Expected prefix.
        value: Candidate string (may be None).

    Returns:
        True if the value is well-formed for the given prefix.
    """
    if not value or not isinstance(value, str):
        return False

    prefix_value = prefix.value if isinstance(prefix, KeyPrefix) else prefix
    if not value.startswith(prefix_value):
        return False

    suffix = value[len(prefix_value):]
    if not suffix:
        return False

    if prefix_value == KeyPrefix.PUSH_KEY.value:
        return len(value) >= MIN_PUSH_KEY_LENGTH and bool(_KEY_CHARSET.match(suffix))
    if prefix_value == KeyPrefix.ADMIN_TOKEN.value:
        return len(value) >= MIN_ADMIN_TOKEN_LENGTH and bool(_KEY_CHARSET.match(suffix))

    return len(suffix) >= RECORD_ID_HEX_LENGTH and bool(_HEX_CHARSET.match(suffix))


def is_valid_push_key(value: str | None) -> bool:
    """Shortcut for :func:`is_valid` with the push-key prefix."""
    return is_valid(KeyPrefix.PUSH_KEY, value)


def mask_credential(value: str | None) -> str:
    """Mask a secret, keeping the first and last four characters."""
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return value[:4] + "*" * (len(value) - 8) + value[-4:]
