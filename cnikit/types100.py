"""Results for CNI spec version 1.0.0."""

from __future__ import annotations

import ipaddress
import json
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Optional

from cnikit import registry, spec, types040
from cnikit.registry import ConversionError
from cnikit.spec import DNS, IPAddress, IPNetwork, Route

IMPLEMENTED_SPEC_VERSION = "1.0.0"
SUPPORTED_VERSIONS = (IMPLEMENTED_SPEC_VERSION,)


def _decode(data: Any) -> dict[str, Any]:
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    if isinstance(data, str):
        data = json.loads(data)
    if not isinstance(data, dict):
        raise ValueError("result must be a JSON object")
    return data


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


def _object_list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r} must be a list")
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
        if self.mac:
            out["mac"] = self.mac
        if self.sandbox:
            out["sandbox"] = self.sandbox
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Interface:
        if not isinstance(data, dict):
            raise ValueError("interface must be a JSON object")
        return cls(
            name=spec._get_str(data, "name"),
            mac=spec._get_str(data, "mac"),
            sandbox=spec._get_str(data, "sandbox"),
        )


@dataclass
class IPConfig:
    """An IP address on an interface."""

    address: IPNetwork
    interface: Optional[int] = None
    gateway: Optional[IPAddress] = None

    def copy(self) -> IPConfig:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.interface is not None:
            out["interface"] = self.interface
        out["address"] = spec.ipnet_to_json(self.address)
        if self.gateway is not None:
            out["gateway"] = str(self.gateway)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IPConfig:
        if not isinstance(data, dict):
            raise ValueError("IP configuration must be a JSON object")
        if "address" not in data:
            raise ValueError("IP configuration is missing address")
        return cls(
            address=spec.ipnet_from_json(data["address"]),
            interface=_parse_index(data.get("interface")),
            gateway=spec._parse_ip(data.get("gateway")),
        )


@dataclass
class Result(spec.Result):
    """A plugin result in the 1.0.0 layout."""

    implemented_spec_version: ClassVar[str] = IMPLEMENTED_SPEC_VERSION

    cni_version: str = ""
    interfaces: list[Interface] = field(default_factory=list)
    ips: list[IPConfig] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)
    dns: DNS = field(default_factory=DNS)

    def get_as_version(self, version: str) -> spec.Result:
        """Return this result converted to ``version``; unset versions count as 1.0.0."""
        return super().get_as_version(version)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.cni_version:
            out["cniVersion"] = self.cni_version
        if self.interfaces:
            out["interfaces"] = [i.to_dict() for i in self.interfaces]
        if self.ips:
            out["ips"] = [ip.to_dict() for ip in self.ips]
        if self.routes:
            out["routes"] = [r.to_dict() for r in self.routes]
        out["dns"] = self.dns.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Result:
        if not isinstance(data, dict):
            raise ValueError("result must be a JSON object")
        return cls(
            cni_version=spec._get_str(data, "cniVersion"),
            interfaces=[Interface.from_dict(i) for i in _object_list(data, "interfaces")],
            ips=[IPConfig.from_dict(ip) for ip in _object_list(data, "ips")],
            routes=[Route.from_dict(r) for r in _object_list(data, "routes")],
            dns=DNS.from_dict(data.get("dns")),
        )


def new_result(data: Any) -> Result:
    """Build a 1.0.0 result from JSON text, bytes or a decoded object."""
    result = Result.from_dict(_decode(data))
    if result.cni_version not in SUPPORTED_VERSIONS:
        listed = " ".join(SUPPORTED_VERSIONS)
        raise ConversionError(
            f"result type supports [{listed}] but unmarshalled CNIVersion is "
            f"{json.dumps(result.cni_version)}"
        )
    return result


def get_result(result: spec.Result) -> Result:
    """Convert any result to a 1.0.0 result."""
    converted = result.get_as_version(IMPLEMENTED_SPEC_VERSION)
    if not isinstance(converted, Result):
        raise ConversionError("failed to convert result")
    return converted


def new_result_from_result(result: spec.Result) -> Result:
    """Convert any result to a 1.0.0 result through the converter registry."""
    converted = registry.convert(result, IMPLEMENTED_SPEC_VERSION)
    if not isinstance(converted, Result):
        raise ConversionError("failed to convert result")
    return converted


def _convert_from_04x(source: types040.Result, to_version: str) -> Result:
    return Result(
        cni_version=to_version,
        interfaces=[
            Interface(name=i.name, mac=i.mac, sandbox=i.sandbox)
            for i in source.interfaces
        ],
        ips=[
            IPConfig(address=ip.address, interface=ip.interface, gateway=ip.gateway)
            for ip in source.ips
        ],
        routes=[r.copy() for r in source.routes],
        dns=source.dns.copy(),
    )


def _convert_from_02x(source: spec.Result, to_version: str) -> Result:
    intermediate = registry.convert(source, "0.4.0")
    return _convert_from_04x(intermediate, IMPLEMENTED_SPEC_VERSION)


def _convert_to_04x(source: Result, to_version: str) -> types040.Result:
    return types040.Result(
        cni_version=to_version,
        interfaces=[
            types040.Interface(name=i.name, mac=i.mac, sandbox=i.sandbox)
            for i in source.interfaces
        ],
        ips=[
            types040.IPConfig(
                version="4" if _is_ipv4(ip.address) else "6",
                address=ip.address,
                interface=ip.interface,
                gateway=ip.gateway,
            )
            for ip in source.ips
        ],
        routes=[r.copy() for r in source.routes],
        dns=source.dns.copy(),
    )


def _convert_to_02x(source: Result, to_version: str) -> spec.Result:
    intermediate = _convert_to_04x(source, "0.4.0")
    return registry.convert(intermediate, to_version)


registry.register_converter("0.1.0", SUPPORTED_VERSIONS, _convert_from_02x)
registry.register_converter("0.2.0", SUPPORTED_VERSIONS, _convert_from_02x)
registry.register_converter("0.3.0", SUPPORTED_VERSIONS, _convert_from_04x)
registry.register_converter("0.3.1", SUPPORTED_VERSIONS, _convert_from_04x)
registry.register_converter("0.4.0", SUPPORTED_VERSIONS, _convert_from_04x)

registry.register_converter("1.0.0", ["0.3.0", "0.3.1", "0.4.0"], _convert_to_04x)
registry.register_converter("1.0.0", ["0.1.0", "0.2.0"], _convert_to_02x)

registry.register_creator(SUPPORTED_VERSIONS, new_result)