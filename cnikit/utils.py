"""Validation of container IDs, network names and interface names."""

from __future__ import annotations

import re

from cnikit.spec import CNIError, ErrorCode

_VALID_NAME = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9_.\-]*")

MAX_INTERFACE_NAME_LENGTH = 15

_NOT_SPACE = frozenset("\x1c\x1d\x1e\x1f")


def validate_container_id(container_id: str) -> None:
    """Raise CNIError unless ``container_id`` is non-empty and well-formed."""
    if not container_id:
        raise CNIError(ErrorCode.UNKNOWN_CONTAINER, "missing containerID")
    if not _VALID_NAME.fullmatch(container_id):
        raise CNIError(
            ErrorCode.INVALID_ENVIRONMENT_VARIABLES,
            "invalid characters in containerID",
            container_id,
        )


def validate_network_name(network_name: str) -> None:
    """Raise CNIError unless ``network_name`` is non-empty and well-formed."""
    if not network_name:
        raise CNIError(ErrorCode.INVALID_NETWORK_CONFIG, "missing network name:")
    if not _VALID_NAME.fullmatch(network_name):
        raise CNIError(
            ErrorCode.INVALID_NETWORK_CONFIG,
            "invalid characters found in network name",
            network_name,
        )


def _is_space(ch: str) -> bool:
    return ch.isspace() and ch not in _NOT_SPACE


def validate_interface_name(if_name: str) -> None:
    """Raise CNIError unless ``if_name`` is a usable interface name.

    The name must be non-empty, at most 15 bytes, not "." or "..", and free of
    "/", ":" and whitespace.
    """
    if not if_name:
        raise CNIError(ErrorCode.INVALID_ENVIRONMENT_VARIABLES, "interface name is empty")
    if len(if_name.encode("utf-8")) > MAX_INTERFACE_NAME_LENGTH:
        raise CNIError(
            ErrorCode.INVALID_ENVIRONMENT_VARIABLES,
            "interface name is too long",
            f"interface name should be less than {MAX_INTERFACE_NAME_LENGTH + 1} characters",
        )
    if if_name in (".", ".."):
        raise CNIError(
            ErrorCode.INVALID_ENVIRONMENT_VARIABLES, "interface name is . or .."
        )
    if any(ch in "/:" or _is_space(ch) for ch in if_name):
        raise CNIError(
            ErrorCode.INVALID_ENVIRONMENT_VARIABLES,
            "interface name contains / or : or whitespace characters",
        )