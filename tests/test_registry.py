from dataclasses import dataclass

import pytest

from cnikit import registry


@dataclass
class _Fake:
    version: str
    payload: str = ""


def _retag(result, to_version):
    return _Fake(to_version, result.payload)


registry.register_converter("reg-test-1", ["reg-test-2", "reg-test-3"], _retag)
registry.register_creator(["reg-test-1"], lambda data: _Fake("reg-test-1", data))


def test_convert_uses_registered_converter():
    converted = registry.convert(_Fake("reg-test-1", "data"), "reg-test-2")
    assert converted == _Fake("reg-test-2", "data")


def test_convert_same_version_returns_input():
    original = _Fake("reg-test-1", "x")
    assert registry.convert(original, "reg-test-1") is original


def test_convert_empty_target_means_010():
    original = _Fake("0.1.0", "x")
    assert registry.convert(original, "") is original


def test_convert_without_converter():
    with pytest.raises(
        registry.ConversionError,
        match="no converter for CNI result version reg-test-2 to reg-test-1",
    ):
        registry.convert(_Fake("reg-test-2"), "reg-test-1")


def test_duplicate_converter_rejected_without_side_effects():
    with pytest.raises(
        ValueError, match="converter already registered for reg-test-1 to reg-test-3"
    ):
        registry.register_converter("reg-test-1", ["reg-test-9", "reg-test-3"], _retag)
    with pytest.raises(registry.ConversionError):
        registry.convert(_Fake("reg-test-1"), "reg-test-9")


def test_new_converter_can_be_registered():
    registry.register_converter("reg-test-4", ["reg-test-5"], _retag)
    assert registry.convert(_Fake("reg-test-4", "p"), "reg-test-5").version == "reg-test-5"


def test_create_uses_registered_creator():
    created = registry.create("reg-test-1", "{}")
    assert created == _Fake("reg-test-1", "{}")


def test_create_unsupported_version():
    with pytest.raises(registry.ConversionError, match='unsupported CNI result version "nope"'):
        registry.create("nope", "{}")


def test_duplicate_creator_rejected():
    with pytest.raises(ValueError, match="creator already registered for reg-test-1"):
        registry.register_creator(["reg-test-1"], lambda data: None)
    assert registry.create("reg-test-1", "d").payload == "d"