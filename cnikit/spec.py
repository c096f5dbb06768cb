"""Core CNI data types: errors, network configuration, routes, DNS and results."""

from __future__ import annotations

import ipaddress
import json
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Optional, TextIO, Union

from cnikit import registry

IPNetwork = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class ErrorCode(IntEnum):
    """Well-known CNI error codes."""

    UNKNOWN = 0
    INCOMPATIBLE_CNI_VERSION = 1
    UNSUPPORTED_FIELD = 2
    UNKNOWN_CONTAINER = 3
    INVALID_ENVIRONMENT_VARIABLES = 4
    IO_FAILURE = 5
    DECODING_FAILURE = 6
    INVALID_NETWORK_CONFIG = 7
    TRY_AGAIN_LATER = 11
    INTERNAL = 999


class CNIError(Exception):
    """An error in the form a CNI plugin reports it to its caller."""

    def __init__(self, code: int, msg: str, details: str = "") -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.msg}; {self.details}"
        return self.msg

    def __repr__(self) -> str:
        return (
            f"CNIError(code={int(self.code)!r}, msg={self.msg!r}, "
            f"details={self.details!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CNIError):
            return NotImplemented
        return (int(self.code), self.msg, self.details) == (
            int(other.code),
            other.msg,
            other.details,
        )

    def __hash__(self) -> int:
        return hash((int(self.code), self.msg, self.details))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": int(self.code), "msg": self.msg}
        if self.details:
            out["details"] = self.details
        return out

    def print(self, file: Optional[TextIO] = None) -> None:
        """Write the error as indented JSON to ``file`` (stdout by default)."""
        out = sys.stdout if file is None else file
        out.write(json.dumps(self.to_dict(), indent=4))


def _json_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def parse_cidr(s: str) -> IPNetwork:
    """Parse ``"10.2.3.1/24"`` into an interface keeping the host address and prefix."""
    _, sep, prefix = s.partition("/")
    if not sep or not prefix.isascii() or not prefix.isdigit():
        raise ValueError(f"invalid CIDR address: {s}")
    try:
        return ipaddress.ip_interface(s)
    except ValueError:
        raise ValueError(f"invalid CIDR address: {s}") from None


def ipnet_to_json(net: IPNetwork) -> str:
    return str(net)


def ipnet_from_json(value: Any) -> IPNetwork:
    if not isinstance(value, str):
        raise ValueError(
            f"cannot unmarshal {_json_kind(value)} into an IP network string"
        )
    return parse_cidr(value)


def _parse_ip(value: Any) -> Optional[IPAddress]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(
            f"cannot unmarshal {_json_kind(value)} into an IP address string"
        )
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        raise ValueError(f"invalid IP address: {value}") from None


def _get_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string, not {_json_kind(value)}")
    return value


def _get_str_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"field {key!r} must be a list of strings")
    return list(value)


def _require_object(data: Any, what: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object, not {_json_kind(data)}")
    return data


@dataclass
class DNS:
    """Values of interest to DNS resolvers."""

    nameservers: list[str] = field(default_factory=list)
    domain: str = ""
    search: list[str] = field(default_factory=list)
    options: list[str] = field(default_factory=list)

    def copy(self) -> DNS:
        return DNS(
            nameservers=list(self.nameservers),
            domain=self.domain,
            search=list(self.search),
            options=list(self.options),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.nameservers:
            out["nameservers"] = list(self.nameservers)
        if self.domain:
            out["domain"] = self.domain
        if self.search:
            out["search"] = list(self.search)
        if self.options:
            out["options"] = list(self.options)
        return out

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> DNS:
        if data is None:
            return cls()
        data = _require_object(data, "dns")
        return cls(
            nameservers=_get_str_list(data, "nameservers"),
            domain=_get_str(data, "domain"),
            search=_get_str_list(data, "search"),
            options=_get_str_list(data, "options"),
        )


@dataclass
class Route:
    """A route to a destination network, optionally through a gateway."""

    dst: IPNetwork
    gw: Optional[IPAddress] = None

    def __str__(self) -> str:
        ip = getattr(self.dst, "ip", None)
        if ip is None:
            ip = self.dst.network_address
        mask = self.dst.netmask.packed.hex()
        gw = "<nil>" if self.gw is None else str(self.gw)
        return f"{{Dst:{{IP:{ip} Mask:{mask}}} GW:{gw}}}"

    def copy(self) -> Route:
        return Route(dst=self.dst, gw=self.gw)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"dst": ipnet_to_json(self.dst)}
        if self.gw is not None:
            out["gw"] = str(self.gw)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Route:
        data = _require_object(data, "route")
        if "dst" not in data:
            raise ValueError("route is missing dst")
        return cls(dst=ipnet_from_json(data["dst"]), gw=_parse_ip(data.get("gw")))


@dataclass
class IPAM:
    """The IPAM section of a network configuration."""

    type: str = ""


class Result(ABC):
    """The outcome of a plugin run, tied to one CNI spec version."""

    implemented_spec_version: ClassVar[str] = ""
    cni_version: str

    @property
    def version(self) -> str:
        return self.cni_version

    def get_as_version(self, version: str) -> Result:
        """Return this result converted to the requested spec version."""
        if not self.cni_version:
            self.cni_version = self.implemented_spec_version
        return registry.convert(self, version)

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form of the result."""

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=4)

    def print(self, file: Optional[TextIO] = None) -> None:
        """Write the result as indented JSON to ``file`` (stdout by default)."""
        out = sys.stdout if file is None else file
        out.write(self.to_json())


@dataclass
class NetConf:
    """A single network configuration."""

    cni_version: str = ""
    name: str = ""
    type: str = ""
    capabilities: dict[str, bool] = field(default_factory=dict)
    ipam: IPAM = field(default_factory=IPAM)
    dns: DNS = field(default_factory=DNS)
    raw_prev_result: Optional[dict[str, Any]] = None
    prev_result: Optional[Result] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetConf:
        data = _require_object(data, "network configuration")
        caps = data.get("capabilities") or {}
        caps = _require_object(caps, "capabilities")
        if not all(isinstance(v, bool) for v in caps.values()):
            raise ValueError("capabilities values must be booleans")
        ipam_data = _require_object(data.get("ipam") or {}, "ipam")
        prev = data.get("prevResult")
        if prev is not None:
            prev = dict(_require_object(prev, "prevResult"))
        return cls(
            cni_version=_get_str(data, "cniVersion"),
            name=_get_str(data, "name"),
            type=_get_str(data, "type"),
            capabilities=dict(caps),
            ipam=IPAM(type=_get_str(ipam_data, "type")),
            dns=DNS.from_dict(data.get("dns")),
            raw_prev_result=prev,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.cni_version:
            out["cniVersion"] = self.cni_version
        if self.name:
            out["name"] = self.name
        if self.type:
            out["type"] = self.type
        if self.capabilities:
            out["capabilities"] = dict(self.capabilities)
        out["ipam"] = {"type": self.ipam.type} if self.ipam.type else {}
        out["dns"] = self.dns.to_dict()
        if self.raw_prev_result:
            out["prevResult"] = dict(self.raw_prev_result)
        return out


@dataclass
class NetConfList:
    """An ordered list of network configurations."""

    cni_version: str = ""
    name: str = ""
    disable_check: bool = False
    plugins: list[NetConf] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetConfList:
        data = _require_object(data, "network configuration list")
        disable = data.get("disableCheck", False)
        if not isinstance(disable, bool):
            raise ValueError("field 'disableCheck' must be a boolean")
        plugins = data.get("plugins") or []
        if not isinstance(plugins, list):
            raise ValueError("field 'plugins' must be a list")
        return cls(
            cni_version=_get_str(data, "cniVersion"),
            name=_get_str(data, "name"),
            disable_check=disable,
            plugins=[NetConf.from_dict(p) for p in plugins],
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.cni_version:
            out["cniVersion"] = self.cni_version
        if self.name:
            out["name"] = self.name
        if self.disable_check:
            out["disableCheck"] = True
        if self.plugins:
            out["plugins"] = [p.to_dict() for p in self.plugins]
        return out


def print_result(result: Result, version: str, file: Optional[TextIO] = None) -> None:
    """Convert ``result`` to ``version`` and print it as JSON."""
    result.get_as_version(version).print(file)