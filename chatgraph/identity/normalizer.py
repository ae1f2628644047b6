"""Canonical identity keys for gateway identifiers."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

PRIMARY_DOMAIN = "c.us"
GROUP_DOMAIN = "g.us"

DEFAULT_NAMESPACE_ALIASES: dict[str, str] = {
    "s.whatsapp.net": PRIMARY_DOMAIN,
    "lid": PRIMARY_DOMAIN,
}

# `<user>:<device>` where the device index is numeric.
_DEVICE_SUFFIX_RE = re.compile(r"(?::\d+)+$")


def extract_raw_id(value: Any) -> str:
    """Pull a raw identifier string out of any record shape the gateway emits.

    Handles plain strings, `{"_serialized": ...}`, `{"id": ...}` (nested to any
    depth), `{"user": ..., "server": ...}` and objects exposing the same
    attributes. Returns "" when nothing usable is present.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))

    if isinstance(value, Mapping):
        getter = value.get
    else:
        def getter(key: str, default: Any = None) -> Any:
            return getattr(value, key, default)

    serialized = getter("_serialized")
    if isinstance(serialized, str) and serialized.strip():
        return serialized.strip()

    nested = getter("id")
    if nested is not None and nested is not value:
        raw = extract_raw_id(nested)
        if raw:
            return raw

    user = getter("user")
    server = getter("server")
    if user:
        user = str(user).strip()
        return f"{user}@{str(server).strip()}" if server else user

    return ""


def normalize_identity(raw: Any, aliases: Mapping[str, str] | None = None) -> str:
    """Return the canonical Identity for a raw identifier.

    Device-instance suffixes are dropped and secondary namespaces are folded
    onto the primary one, so `123:4@s.whatsapp.net` and `123@c.us` collapse to
    the same key. Total and idempotent.
    """
    value = extract_raw_id(raw)
    if not value:
        return ""

    alias_map = DEFAULT_NAMESPACE_ALIASES if aliases is None else aliases

    user, sep, domain = value.rpartition("@")
    if not sep:
        return _DEVICE_SUFFIX_RE.sub("", value)

    user = _DEVICE_SUFFIX_RE.sub("", user.strip())
    domain = domain.strip().lower()
    domain = alias_map.get(domain, domain)
    if not user:
        return f"@{domain}"
    return f"{user}@{domain}"


def is_group_identity(identity: str) -> bool:
    return identity.endswith(f"@{GROUP_DOMAIN}")


def is_person_identity(identity: str) -> bool:
    """True for ids in the person namespace; broadcast lists, status and channels are not."""
    return identity.endswith(f"@{PRIMARY_DOMAIN}") and not identity.startswith("@")


def identity_user(identity: str) -> str:
    """User part of an identity (the phone number for person ids)."""
    return identity.split("@", 1)[0]


_NUMERIC_NAME_RE = re.compile(r"^[\d\s+\-().]*$")


def is_numeric_name(name: str | None) -> bool:
    """True when a display name is empty or only phone-number characters."""
    return not name or bool(_NUMERIC_NAME_RE.fullmatch(name.strip()))
