import io
import ipaddress
import json
from dataclasses import dataclass
from typing import ClassVar

import pytest

from cnikit import registry
from cnikit.spec import (
    DNS,
    CNIError,
    ErrorCode,
    NetConf,
    NetConfList,
    Result,
    Route,
    ipnet_from_json,
    ipnet_to_json,
    parse_cidr,
    print_result,
)


@dataclass
class _FakeResult(Result):
    implemented_spec_version: ClassVar[str] = "7.7.7"
    cni_version: str = ""
    note: str = ""

    def to_dict(self):
        return {"cniVersion": self.cni_version, "note": self.note}


@pytest.mark.parametrize(
    "text, ip, prefix",
    [("1.2.3.4/24", "1.2.3.4", 24), ("2001:db8::/32", "2001:db8::", 32)],
)
def test_parse_cidr_parse_and_stringify(text, ip, prefix):
    net = parse_cidr(text)
    assert str(net) == text
    assert str(net.ip) == ip
    assert net.network.prefixlen == prefix


def test_parse_cidr_invalid():
    with pytest.raises(ValueError, match=r"^invalid CIDR address: 1\.2\.3/45$"):
        parse_cidr("1.2.3/45")


def test_parse_cidr_requires_prefix():
    with pytest.raises(ValueError, match="invalid CIDR address: 1.2.3.4"):
        parse_cidr("1.2.3.4")


def test_ipnet_json_round_trip():
    net = ipaddress.ip_interface("1.2.3.4/24")
    encoded = ipnet_to_json(net)
    assert json.loads(json.dumps(encoded)) == "1.2.3.4/24"
    assert ipnet_from_json(encoded) == net


def test_ipnet_from_json_not_a_string():
    with pytest.raises(ValueError, match="number"):
        ipnet_from_json(1)


def test_ipnet_from_json_semantically_invalid():
    with pytest.raises(ValueError, match=r"^invalid CIDR address: 1\.2\.3\.4/99$"):
        ipnet_from_json("1.2.3.4/99")


@pytest.fixture
def example_route():
    return Route(
        dst=ipaddress.ip_interface("1.2.3.0/24"),
        gw=ipaddress.ip_address("1.2.3.1"),
    )


def test_route_json_round_trip(example_route):
    data = example_route.to_dict()
    assert data == {"dst": "1.2.3.0/24", "gw": "1.2.3.1"}
    assert Route.from_dict(json.loads(json.dumps(data))) == example_route


def test_route_invalid_gateway():
    with pytest.raises(ValueError, match=r"^invalid IP address: 1\.2\.3\.x$"):
        Route.from_dict({"dst": "1.2.3.0/24", "gw": "1.2.3.x"})


def test_route_string_has_hex_mask(example_route):
    assert str(example_route) == "{Dst:{IP:1.2.3.0 Mask:ffffff00} GW:1.2.3.1}"


def test_route_without_gateway_omits_gw():
    route = Route(dst=ipaddress.ip_interface("15.5.6.0/24"))
    assert route.to_dict() == {"dst": "15.5.6.0/24"}
    assert Route.from_dict(route.to_dict()).gw is None


def test_route_copy(example_route):
    copied = example_route.copy()
    assert copied == example_route
    assert copied is not example_route


def test_error_string_with_details():
    err = CNIError(1234, "some message", "some details")
    assert str(err) == "some message; some details"


def test_error_string_without_details():
    assert str(CNIError(1234, "some message")) == "some message"


def test_error_equality():
    assert CNIError(1234, "some message", "some details") == CNIError(
        1234, "some message", "some details"
    )
    assert CNIError(1234, "a") != CNIError(1234, "b")


def test_error_print():
    buf = io.StringIO()
    CNIError(1234, "some message", "some details").print(buf)
    assert json.loads(buf.getvalue()) == {
        "code": 1234,
        "msg": "some message",
        "details": "some details",
    }


def test_error_to_dict_uses_numeric_code():
    err = CNIError(ErrorCode.INTERNAL, "potato")
    assert err.to_dict() == {"code": 999, "msg": "potato"}


def test_dns_copy_is_independent():
    dns = DNS(nameservers=["1.2.3.4"], domain="acompany.com", search=["a"], options=["o"])
    copied = dns.copy()
    copied.nameservers.append("1::cafe")
    assert dns.nameservers == ["1.2.3.4"]
    assert copied.domain == "acompany.com"


def test_dns_round_trip_and_empty():
    assert DNS().to_dict() == {}
    data = {
        "nameservers": ["1.2.3.4", "1::cafe"],
        "domain": "acompany.com",
        "search": ["somedomain.com", "otherdomain.net"],
        "options": ["foo", "bar"],
    }
    assert DNS.from_dict(data).to_dict() == data


def test_netconf_round_trip():
    data = {
        "cniVersion": "1.0.0",
        "name": "foobar",
        "type": "baz",
        "capabilities": {"portMappings": True},
        "ipam": {"type": "host-local"},
        "dns": {"nameservers": ["1.2.3.4"]},
        "prevResult": {"cniVersion": "1.0.0"},
    }
    conf = NetConf.from_dict(data)
    assert conf.name == "foobar"
    assert conf.ipam.type == "host-local"
    assert conf.raw_prev_result == {"cniVersion": "1.0.0"}
    assert conf.prev_result is None
    assert conf.to_dict() == data


def test_netconf_defaults_keep_ipam_and_dns():
    assert NetConf().to_dict() == {"ipam": {}, "dns": {}}


def test_netconf_rejects_non_object():
    with pytest.raises(ValueError):
        NetConf.from_dict("not a config")


def test_netconf_list_round_trip():
    data = {
        "cniVersion": "0.4.0",
        "name": "list",
        "disableCheck": True,
        "plugins": [{"type": "bridge", "ipam": {}, "dns": {}}],
    }
    conf_list = NetConfList.from_dict(data)
    assert conf_list.disable_check is True
    assert conf_list.plugins[0].type == "bridge"
    assert conf_list.to_dict() == data


def test_result_get_as_same_version_fills_in_version():
    result = _FakeResult(note="x")
    converted = Result.get_as_version(result, "7.7.7")
    assert converted is result
    assert result.version == "7.7.7"


def test_result_print_and_to_json():
    result = _FakeResult(cni_version="7.7.7", note="hello")
    buf = io.StringIO()
    Result.print(result, buf)
    assert buf.getvalue() == Result.to_json(result)
    assert json.loads(buf.getvalue()) == {"cniVersion": "7.7.7", "note": "hello"}


def test_print_result_writes_converted_result():
    buf = io.StringIO()
    print_result(_FakeResult(cni_version="7.7.7", note="n"), "7.7.7", buf)
    assert json.loads(buf.getvalue())["note"] == "n"


def test_print_result_without_converter_fails():
    with pytest.raises(registry.ConversionError, match="no converter"):
        print_result(_FakeResult(cni_version="7.7.7"), "0.2.0", io.StringIO())