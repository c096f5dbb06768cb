import io
import ipaddress
import json

import pytest

from cnikit import types100
from cnikit.spec import NetConf, parse_cidr
from cnikit.version import (
    ConfigDecoder,
    ErrorIncompatible,
    PluginDecoder,
    Reconciler,
    current,
    greater_than_or_equal_to,
    parse_prev_result,
    parse_version,
    plugin_supports,
    versions_starting_from,
)


def test_current_is_100():
    assert current() == "1.0.0"


def test_config_decoder_explicit_version():
    assert ConfigDecoder().decode(b'{ "cniVersion": "4.3.2" }') == "4.3.2"


def test_config_decoder_missing_version():
    assert ConfigDecoder().decode(b'{ "not-a-version-field": "foo" }') == "0.1.0"


def test_config_decoder_malformed():
    with pytest.raises(ValueError) as exc:
        ConfigDecoder().decode(b"{{{")
    assert str(exc.value).startswith(
        "decoding version from network config: invalid character"
    )


def test_plugin_decoder_reads_versions():
    data = b"""{
        "cniVersion": "some-library-version",
        "supportedVersions": [ "some-version", "some-other-version" ]
    }"""
    info = PluginDecoder().decode(data)
    assert info.supported_versions() == ["some-version", "some-other-version"]


def test_plugin_decoder_bad_json():
    with pytest.raises(ValueError) as exc:
        PluginDecoder().decode(b"{{{")
    assert str(exc.value) == (
        "decoding version info: invalid character '{' "
        "looking for beginning of object key string"
    )


def test_plugin_decoder_missing_cni_version():
    with pytest.raises(ValueError) as exc:
        PluginDecoder().decode(b'{ "supportedVersions": [ "foo" ] }')
    assert str(exc.value) == "decoding version info: missing field cniVersion"


def test_plugin_decoder_assumes_legacy_versions():
    info = PluginDecoder().decode(b'{ "cniVersion": "0.2.0" }')
    assert info.supported_versions() == ["0.1.0", "0.2.0"]


def test_plugin_decoder_missing_supported_versions():
    with pytest.raises(ValueError) as exc:
        PluginDecoder().decode(b'{ "cniVersion": "0.4.0" }')
    assert str(exc.value) == "decoding version info: missing field supportedVersions"


def test_plugin_supports_requires_a_version():
    with pytest.raises(ValueError):
        plugin_supports()


def test_encode_round_trips_through_decoder():
    info = plugin_supports("9.8.7", "10.0.0")
    stream = io.StringIO()
    info.encode(stream)
    text = stream.getvalue()
    assert text.endswith("\n")
    assert json.loads(text) == {
        "cniVersion": "1.0.0",
        "supportedVersions": ["9.8.7", "10.0.0"],
    }
    assert PluginDecoder().decode(text) == info


def test_parse_version_valid():
    assert parse_version("1.2.3") == (1, 2, 3)


@pytest.mark.parametrize(
    "bad", ["asdfasdf", "asdf.", ".asdfas", "asdf.adsf.", "0.", "..", "1.2.3.4.5", ""]
)
def test_parse_version_malformed(bad):
    with pytest.raises(ValueError):
        parse_version(bad)


@pytest.mark.parametrize(
    "high, low",
    [("1.2.34", "1.2.14"), ("2.5.4", "2.4.4"), ("1.2.3", "0.2.3"), ("0.4.0", "0.3.1")],
)
def test_greater_than_or_equal_to(high, low):
    assert greater_than_or_equal_to(high, low) is True
    assert greater_than_or_equal_to(low, high) is False


def test_greater_than_or_equal_to_same():
    assert greater_than_or_equal_to("1.2.3", "1.2.3") is True


@pytest.mark.parametrize("first, second", [("1.2.34", "asdadf"), ("adsfad", "2.5.4")])
def test_greater_than_or_equal_to_malformed(first, second):
    with pytest.raises(ValueError):
        greater_than_or_equal_to(first, second)


def test_reconciler_accepts_supported_version():
    info = plugin_supports("1.2.3", "4.3.2")
    assert Reconciler().check("4.3.2", info) is None


def test_reconciler_rejects_unsupported_version():
    info = plugin_supports("1.2.3", "4.3.2")
    with pytest.raises(ErrorIncompatible) as exc:
        Reconciler().check("0.1.0", info)
    assert exc.value == ErrorIncompatible("0.1.0", ["1.2.3", "4.3.2"])
    assert str(exc.value) == (
        'incompatible CNI versions: config is "0.1.0", plugin supports ["1.2.3" "4.3.2"]'
    )


def test_versions_starting_from():
    assert versions_starting_from("0.3.1").supported_versions() == [
        "0.3.1",
        "0.4.0",
        "1.0.0",
    ]


def test_parse_prev_result():
    raw = json.loads(
        """{
        "cniVersion": "1.0.0",
        "interfaces": [
            {"name": "eth0", "mac": "00:11:22:33:44:55", "sandbox": "/proc/3553/ns/net"}
        ],
        "ips": [
            {"version": "4", "interface": 0, "address": "1.2.3.30/24", "gateway": "1.2.3.1"}
        ]
    }"""
    )
    conf = NetConf(cni_version="1.0.0", name="foobar", type="baz", raw_prev_result=raw)
    parse_prev_result(conf)
    expected = types100.Result(
        cni_version=types100.IMPLEMENTED_SPEC_VERSION,
        interfaces=[
            types100.Interface(
                name="eth0", mac="00:11:22:33:44:55", sandbox="/proc/3553/ns/net"
            )
        ],
        ips=[
            types100.IPConfig(
                address=parse_cidr("1.2.3.30/24"),
                interface=0,
                gateway=ipaddress.ip_address("1.2.3.1"),
            )
        ],
    )
    assert conf.prev_result == expected
    assert conf.raw_prev_result is None


def test_parse_prev_result_unknown_version():
    conf = NetConf(
        cni_version=current(),
        name="foobar",
        type="baz",
        raw_prev_result={"cniVersion": "5678.456"},
    )
    with pytest.raises(ValueError) as exc:
        parse_prev_result(conf)
    assert str(exc.value) == (
        "could not parse prevResult: result type supports [1.0.0] "
        'but unmarshalled CNIVersion is "5678.456"'
    )


def test_parse_prev_result_version_mismatch():
    conf = NetConf(
        cni_version=current(),
        name="foobar",
        type="baz",
        raw_prev_result={
            "cniVersion": "0.2.0",
            "ip4": {"ip": "1.2.3.30/24", "gateway": "1.2.3.1"},
        },
    )
    with pytest.raises(ValueError) as exc:
        parse_prev_result(conf)
    assert str(exc.value) == (
        "could not parse prevResult: result type supports [1.0.0] "
        'but unmarshalled CNIVersion is "0.2.0"'
    )


def test_parse_prev_result_absent():
    conf = NetConf(cni_version=current(), name="foobar", type="baz")
    parse_prev_result(conf)
    assert conf.prev_result is None