"""CNI spec versions: plugin version info, decoding, comparison and reconciliation."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, TextIO

from cnikit import create, spec, types100

_INT = re.compile(r"[+-]?[0-9]+")


def current() -> str:
    """Return the CNI spec version this package implements."""
    return types100.IMPLEMENTED_SPEC_VERSION


@dataclass
class PluginInfo:
    """The CNI spec versions a plugin supports."""

    cni_version: str
    versions: list[str] = field(default_factory=list)

    def supported_versions(self) -> list[str]:
        return list(self.versions)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"cniVersion": self.cni_version}
        if self.versions:
            out["supportedVersions"] = list(self.versions)
        return out

    def encode(self, stream: TextIO) -> None:
        """Write the version info as one line of JSON."""
        stream.write(json.dumps(self.to_dict(), separators=(",", ":")) + "\n")


def plugin_supports(*args: str) -> PluginInfo:
    """Return version info reporting the given versions as supported."""
    if not args:
        raise ValueError("you must support at least one version")
    return PluginInfo(cni_version=current(), versions=list(args))


class ConfigDecoder:
    """Reads the CNI version out of network configuration JSON."""

    def decode(self, data: Any) -> str:
        return create.decode_version(data)


class PluginDecoder:
    """Reads the answer a plugin gives to the VERSION command."""

    def decode(self, data: Any) -> PluginInfo:
        prefix = "decoding version info"
        try:
            doc = create._load_json(data)
        except ValueError as err:
            raise ValueError(f"{prefix}: {err}") from err
        if doc is None:
            doc = {}
        if not isinstance(doc, dict):
            raise ValueError(
                f"{prefix}: cannot unmarshal {spec._json_kind(doc)} into an object"
            )
        try:
            cni_version = spec._get_str(doc, "cniVersion")
            versions = spec._get_str_list(doc, "supportedVersions")
        except ValueError as err:
            raise ValueError(f"{prefix}: {err}") from err
        if not cni_version:
            raise ValueError(f"{prefix}: missing field cniVersion")
        if not versions:
            if cni_version == "0.2.0":
                return plugin_supports("0.1.0", "0.2.0")
            raise ValueError(f"{prefix}: missing field supportedVersions")
        return PluginInfo(cni_version=cni_version, versions=versions)


def parse_version(version: str) -> tuple[int, int, int]:
    """Split a version such as "0.4.5" into (major, minor, micro)."""
    if not version:
        raise ValueError(f"invalid version {json.dumps(version)}: the version is empty")
    parts = version.split(".")
    if len(parts) >= 4:
        raise ValueError(f"invalid version {json.dumps(version)}: too many parts")
    numbers = [0, 0, 0]
    for position, (label, part) in enumerate(zip(("major", "minor", "micro"), parts)):
        if not _INT.fullmatch(part):
            raise ValueError(
                f"failed to convert {label} version part {json.dumps(part)}: "
                "invalid syntax"
            )
        numbers[position] = int(part)
    return numbers[0], numbers[1], numbers[2]


def greater_than_or_equal_to(version: str, other_version: str) -> bool:
    """Return whether ``version`` is at least ``other_version``."""
    return parse_version(version) >= parse_version(other_version)


class ErrorIncompatible(Exception):
    """The configuration's version is not one the plugin supports."""

    def __init__(self, config: str, supported: Iterable[str]) -> None:
        self.config = config
        self.supported = list(supported)
        super().__init__(str(self))

    def details(self) -> str:
        listed = " ".join(json.dumps(v) for v in self.supported)
        return f"config is {json.dumps(self.config)}, plugin supports [{listed}]"

    def __str__(self) -> str:
        return f"incompatible CNI versions: {self.details()}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorIncompatible):
            return NotImplemented
        return (self.config, self.supported) == (other.config, other.supported)

    def __hash__(self) -> int:
        return hash((self.config, tuple(self.supported)))


class Reconciler:
    """Checks a configuration version against the versions a plugin supports."""

    def check(self, config_version: str, plugin_info: PluginInfo) -> None:
        self.check_raw(config_version, plugin_info.supported_versions())

    def check_raw(self, config_version: str, supported_versions: Iterable[str]) -> None:
        """Raise ErrorIncompatible unless ``config_version`` is supported."""
        supported = list(supported_versions)
        if config_version not in supported:
            raise ErrorIncompatible(config_version, supported)


LEGACY = plugin_supports("0.1.0", "0.2.0")
ALL = plugin_supports("0.1.0", "0.2.0", "0.3.0", "0.3.1", "0.4.0", "1.0.0")


def versions_starting_from(minimum: str) -> PluginInfo:
    """Return version info for every known version from ``minimum`` on."""
    versions = ALL.supported_versions()
    if minimum in versions:
        versions = versions[versions.index(minimum):]
    else:
        versions = []
    return plugin_supports(*versions)


def new_result(version: str, data: Any) -> spec.Result:
    """Build a result of ``version`` from JSON ``data``."""
    return create.create(version, data)


def parse_prev_result(conf: spec.NetConf) -> None:
    """Parse ``conf.raw_prev_result`` into ``conf.prev_result``."""
    if conf.raw_prev_result is None:
        return

    # Older results may carry no version; they share the configuration's.
    data = dict(conf.raw_prev_result)
    if not data.get("CNIVersion"):
        data["CNIVersion"] = conf.cni_version
    injected = data.pop("CNIVersion")
    data.setdefault("cniVersion", injected)

    conf.raw_prev_result = None
    try:
        conf.prev_result = create.create(conf.cni_version, data)
    except ValueError as err:
        raise ValueError(f"could not parse prevResult: {err}") from err