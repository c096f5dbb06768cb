"""Toolkit for Container Network Interface plugins: spec types, versioned results and conversion, version negotiation, validation and the plugin skeleton."""

__version__ = "0.1.0"

__all__ = [
    "args",
    "create",
    "registry",
    "skel",
    "spec",
    "types020",
    "types040",
    "types100",
    "utils",
    "version",
]