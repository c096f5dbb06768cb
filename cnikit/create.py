"""Creating CNI results from JSON and reading the spec version out of JSON."""

from __future__ import annotations

import json
from typing import Any

from cnikit import registry, spec
from cnikit import types020, types040, types100  # noqa: F401  (registers result types)

_JSON_CONTEXTS = {
    "Expecting property name enclosed in double quotes": (
        "looking for beginning of object key string"
    ),
    "Expecting value": "looking for beginning of value",
    "Expecting ':' delimiter": "after object key",
    "Expecting ',' delimiter": "after object key:value pair",
    "Extra data": "after top-level value",
}


def _json_error_text(err: json.JSONDecodeError, doc: str) -> str:
    if err.pos >= len(doc) or err.msg.startswith("Unterminated string"):
        return "unexpected end of JSON input"
    context = _JSON_CONTEXTS.get(err.msg, err.msg[:1].lower() + err.msg[1:])
    return f"invalid character {doc[err.pos]!r} {context}"


def _load_json(data: Any) -> Any:
    """Decode JSON text or bytes; anything else is taken as already decoded."""
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8", errors="replace")
    if not isinstance(data, str):
        return data
    try:
        return json.loads(data)
    except json.JSONDecodeError as err:
        raise ValueError(_json_error_text(err, data)) from None


def decode_version(data: Any) -> str:
    """Return the ``cniVersion`` of a configuration or result; missing means 0.1.0."""
    prefix = "decoding version from network config"
    try:
        doc = _load_json(data)
    except ValueError as err:
        raise ValueError(f"{prefix}: {err}") from err
    if doc is None:
        doc = {}
    if not isinstance(doc, dict):
        raise ValueError(
            f"{prefix}: cannot unmarshal {spec._json_kind(doc)} into an object"
        )
    version = doc.get("cniVersion")
    if version is None:
        version = ""
    if not isinstance(version, str):
        raise ValueError(
            f"{prefix}: cannot unmarshal {spec._json_kind(version)} "
            "into field cniVersion of type string"
        )
    return version or "0.1.0"


def create(version: str, data: Any) -> spec.Result:
    """Build a result of the given spec ``version`` from JSON ``data``."""
    return registry.create(version, data)


def create_from_bytes(data: Any) -> spec.Result:
    """Build a result from JSON ``data``, taking its spec version from the data."""
    return registry.create(decode_version(data), data)