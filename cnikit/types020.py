"""Results for CNI spec versions 0.1.0 and 0.2.0."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Optional

from cnikit import registry, spec
from cnikit.registry import ConversionError
from cnikit.spec import DNS, IPAddress, IPNetwork, Route

IMPLEMENTED_SPEC_VERSION = "0.2.0"
SUPPORTED_VERSIONS = ("", "0.1.0", IMPLEMENTED_SPEC_VERSION)


def _decode(data: Any) -> dict[str, Any]:
    """Turn JSON text, bytes or a decoded object into a dict."""
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    if isinstance(data, str):
        data = json.loads(data)
    return _require_object(data, "result")


def _require_object(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _object_list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key) or []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r} must be a list")
    return value


def _check_version(result: spec.Result, supported: Iterable[str]) -> None:
    supported = tuple(supported)
    if result.cni_version not in supported:
        raise ConversionError(
            f"result type supports [{' '.join(supported)}] but unmarshalled CNIVersion is "
            f"{json.dumps(result.cni_version)}"
        )


def _expect(converted: spec.Result, cls: type) -> Any:
    if not isinstance(converted, cls):
        raise ConversionError("failed to convert result")
    return converted


def _compact(cni_version: str, dns: DNS, **fields: Any) -> dict[str, Any]:
    """Build a result dict, leaving out an empty version and empty fields."""
    out: dict[str, Any] = {"cniVersion": cni_version} if cni_version else {}
    out.update((key, value) for key, value in fields.items() if value)
    out["dns"] = dns.to_dict()
    return out


@dataclass
class IPConfig:
    """An address, gateway and routes for one IP family."""

    ip: IPNetwork
    gateway: Optional[IPAddress] = None
    routes: list[Route] = field(default_factory=list)

    def copy(self) -> IPConfig:
        return IPConfig(
            ip=self.ip,
            gateway=self.gateway,
            routes=[route.copy() for route in self.routes],
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"ip": spec.ipnet_to_json(self.ip)}
        if self.gateway is not None:
            out["gateway"] = str(self.gateway)
        if self.routes:
            out["routes"] = [route.to_dict() for route in self.routes]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IPConfig:
        _require_object(data, "IP configuration")
        if "ip" not in data:
            raise ValueError("IP configuration is missing ip")
        return cls(
            ip=spec.ipnet_from_json(data["ip"]),
            gateway=spec._parse_ip(data.get("gateway")),
            routes=[Route.from_dict(route) for route in _object_list(data, "routes")],
        )


@dataclass
class Result(spec.Result):
    """A plugin result in the 0.1.0 / 0.2.0 layout."""

    implemented_spec_version: ClassVar[str] = IMPLEMENTED_SPEC_VERSION

    cni_version: str = ""
    ip4: Optional[IPConfig] = None
    ip6: Optional[IPConfig] = None
    dns: DNS = field(default_factory=DNS)

    def get_as_version(self, version: str) -> spec.Result:
        """Return this result converted to ``version``; unset versions count as 0.2.0."""
        return super().get_as_version(version)

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            self.cni_version,
            self.dns,
            ip4=None if self.ip4 is None else self.ip4.to_dict(),
            ip6=None if self.ip6 is None else self.ip6.to_dict(),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Result:
        _require_object(data, "result")
        ip4 = data.get("ip4")
        ip6 = data.get("ip6")
        return cls(
            cni_version=spec._get_str(data, "cniVersion"),
            ip4=None if ip4 is None else IPConfig.from_dict(ip4),
            ip6=None if ip6 is None else IPConfig.from_dict(ip6),
            dns=DNS.from_dict(data.get("dns")),
        )


def new_result(data: Any) -> Result:
    """Build a 0.1.0/0.2.0 result from JSON text, bytes or a decoded object."""
    result = Result.from_dict(_decode(data))
    _check_version(result, SUPPORTED_VERSIONS)
    if not result.cni_version:
        result.cni_version = "0.1.0"
    return result


def get_result(result: spec.Result) -> Result:
    """Convert any result to a 0.2.0 result."""
    return _expect(registry.convert(result, IMPLEMENTED_SPEC_VERSION), Result)


def _convert_between(source: Result, to_version: str) -> Result:
    return Result(
        cni_version=to_version,
        ip4=None if source.ip4 is None else source.ip4.copy(),
        ip6=None if source.ip6 is None else source.ip6.copy(),
        dns=source.dns.copy(),
    )


registry.register_converter("0.1.0", [IMPLEMENTED_SPEC_VERSION], _convert_between)
registry.register_converter(IMPLEMENTED_SPEC_VERSION, ["0.1.0"], _convert_between)
registry.register_creator(SUPPORTED_VERSIONS, new_result)