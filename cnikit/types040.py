"""Results for CNI spec versions 0.3.0, 0.3.1 and 0.4.0."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Optional

from cnikit import registry, spec, types020
from cnikit.registry import ConversionError
from cnikit.spec import DNS, IPAddress, IPNetwork, Route
from cnikit.types020 import (
    _check_version,
    _compact,
    _decode,
    _expect,
    _object_list,
    _require_object,
)

IMPLEMENTED_SPEC_VERSION = "0.4.0"
SUPPORTED_VERSIONS = ("0.3.0", "0.3.1", IMPLEMENTED_SPEC_VERSION)


def _is_ipv4(net: IPNetwork) -> bool:
    if net.version == 4:
        return True
    return isinstance(net.ip, ipaddress.IPv6Address) and net.ip.ipv4_mapped is not None


def _parse_index(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("cannot unmarshal interface index: expected an integer")
    return value


@dataclass
class Interface:
    """An interface created by a plugin."""

    name: str = ""
    mac: str = ""
    sandbox: str = ""

    def copy(self) -> Interface:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        out.update((key, value) for key, value in (("mac", self.mac), ("sandbox", self.sandbox)) if value)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Interface:
        _require_object(data, "interface")
        return cls(**{key: spec._get_str(data, key) for key in ("name", "mac", "sandbox")})


@dataclass
class IPConfig:
    """An IP address of family ``version`` ("4" or "6") on an interface."""

    version: str
    address: IPNetwork
    interface: Optional[int] = None
    gateway: Optional[IPAddress] = None

    def copy(self) -> IPConfig:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"version": self.version}
        if self.interface is not None:
            out["interface"] = self.interface
        out["address"] = spec.ipnet_to_json(self.address)
        if self.gateway is not None:
            out["gateway"] = str(self.gateway)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IPConfig:
        _require_object(data, "IP configuration")
        if "address" not in data:
            raise ValueError("IP configuration is missing address")
        return cls(
            version=spec._get_str(data, "version"),
            address=spec.ipnet_from_json(data["address"]),
            interface=_parse_index(data.get("interface")),
            gateway=spec._parse_ip(data.get("gateway")),
        )


@dataclass
class Result(spec.Result):
    """A plugin result in the 0.3.x / 0.4.0 layout."""

    implemented_spec_version: ClassVar[str] = IMPLEMENTED_SPEC_VERSION

    cni_version: str = ""
    interfaces: list[Interface] = field(default_factory=list)
    ips: list[IPConfig] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    dns: DNS = field(default_factory=DNS)

    def get_as_version(self, version: str) -> spec.Result:
        """Return this result converted to ``version``; unset versions count as 0.4.0."""
        return super().get_as_version(version)

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            self.cni_version,
            self.dns,
            interfaces=[i.to_dict() for i in self.interfaces],
            ips=[ip.to_dict() for ip in self.ips],
            routes=[r.to_dict() for r in self.routes],
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Result:
        _require_object(data, "result")
        return cls(
            cni_version=spec._get_str(data, "cniVersion"),
            interfaces=[Interface.from_dict(i) for i in _object_list(data, "interfaces")],
            ips=[IPConfig.from_dict(ip) for ip in _object_list(data, "ips")],
            routes=[Route.from_dict(r) for r in _object_list(data, "routes")],
            dns=DNS.from_dict(data.get("dns")),
        )


def new_result(data: Any) -> Result:
    """Build a 0.3.x/0.4.0 result from JSON text, bytes or a decoded object."""
    result = Result.from_dict(_decode(data))
    _check_version(result, SUPPORTED_VERSIONS)
    return result


def get_result(result: spec.Result) -> Result:
    """Convert any result to a 0.4.0 result."""
    return _expect(result.get_as_version(IMPLEMENTED_SPEC_VERSION), Result)


def new_result_from_result(result: spec.Result) -> Result:
    """Convert any result to a 0.4.0 result through the converter registry."""
    return _expect(registry.convert(result, IMPLEMENTED_SPEC_VERSION), Result)


def _convert_from_02x(source: types020.Result, to_version: str) -> Result:
    out = Result(cni_version=to_version, dns=source.dns.copy())
    for family, ipc in (("4", source.ip4), ("6", source.ip6)):
        if ipc is None:
            continue
        out.ips.append(IPConfig(version=family, address=ipc.ip, gateway=ipc.gateway))
        out.routes.extend(route.copy() for route in ipc.routes)
    return out


def _convert_internal(source: Result, to_version: str) -> Result:
    return Result(
        cni_version=to_version,
        interfaces=[i.copy() for i in source.interfaces],
        ips=[ip.copy() for ip in source.ips],
        routes=[r.copy() for r in source.routes],
        dns=source.dns.copy(),
    )


def _convert_to_02x(source: Result, to_version: str) -> types020.Result:
    out = types020.Result(cni_version=to_version, dns=source.dns.copy())
    # 0.2.0 and earlier hold only one address per family: keep the first.
    for ipc in source.ips:
        if ipc.version == "4" and out.ip4 is None:
            out.ip4 = types020.IPConfig(ip=ipc.address, gateway=ipc.gateway)
        elif ipc.version == "6" and out.ip6 is None:
            out.ip6 = types020.IPConfig(ip=ipc.address, gateway=ipc.gateway)
        if out.ip4 is not None and out.ip6 is not None:
            break

    for route in source.routes:
        target = out.ip4 if _is_ipv4(route.dst) else out.ip6
        if target is not None:
            target.routes.append(Route(dst=route.dst, gw=route.gw))

    if out.ip4 is None and out.ip6 is None:
        raise ConversionError("cannot convert: no valid IP addresses")
    return out


_LEGACY = ["0.1.0", "0.2.0"]

for _legacy_version in _LEGACY:
    registry.register_converter(_legacy_version, SUPPORTED_VERSIONS, _convert_from_02x)
for _old_version in ("0.3.0", "0.3.1"):
    registry.register_converter(_old_version, SUPPORTED_VERSIONS, _convert_internal)

registry.register_converter("0.4.0", ["0.3.0", "0.3.1"], _convert_internal)
for _newer_version in ("0.4.0", "0.3.1", "0.3.0"):
    registry.register_converter(_newer_version, _LEGACY, _convert_to_02x)

registry.register_creator(SUPPORTED_VERSIONS, new_result)