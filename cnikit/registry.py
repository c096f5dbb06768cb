"""Registries of result converters and result creators, keyed by spec version."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

ConvertFn = Callable[[Any, str], Any]
CreateFn = Callable[[Any], Any]


class ConversionError(ValueError):
    """A result could not be converted or created for a spec version."""


@dataclass(frozen=True)
class _Converter:
    from_version: str
    to_versions: tuple[str, ...]
    convert_fn: ConvertFn


@dataclass(frozen=True)
class _Creator:
    versions: tuple[str, ...]
    create_fn: CreateFn


_converters: list[_Converter] = []
_creators: list[_Creator] = []


def _find_converter(from_version: str, to_version: str) -> Optional[_Converter]:
    return next(
        (
            c
            for c in _converters
            if c.from_version == from_version and to_version in c.to_versions
        ),
        None,
    )


def _find_creator(version: str) -> Optional[_Creator]:
    return next((c for c in _creators if version in c.versions), None)


def register_converter(
    from_version: str, to_versions: Iterable[str], convert_fn: ConvertFn
) -> None:
    """Register ``convert_fn`` to turn ``from_version`` results into any of ``to_versions``."""
    targets = tuple(to_versions)
    for version in targets:
        if _find_converter(from_version, version) is not None:
            raise ValueError(
                f"converter already registered for {from_version} to {version}"
            )
    _converters.append(_Converter(from_version, targets, convert_fn))


def convert(result: Any, to_version: str) -> Any:
    """Convert ``result`` to ``to_version``; an empty version means 0.1.0."""
    if not to_version:
        to_version = "0.1.0"
    from_version = result.version
    if from_version == to_version:
        return result
    converter = _find_converter(from_version, to_version)
    if converter is None:
        raise ConversionError(
            f"no converter for CNI result version {from_version} to {to_version}"
        )
    return converter.convert_fn(result, to_version)


def register_creator(versions: Iterable[str], create_fn: CreateFn) -> None:
    """Register ``create_fn`` to build results of any of ``versions`` from JSON."""
    listed = tuple(versions)
    for version in listed:
        if _find_creator(version) is not None:
            raise ValueError(f"creator already registered for {version}")
    _creators.append(_Creator(listed, create_fn))


def create(version: str, data: Any) -> Any:
    """Build a result of ``version`` from its JSON ``data``."""
    creator = _find_creator(version)
    if creator is None:
        raise ConversionError(f"unsupported CNI result version {json.dumps(version)}")
    return creator.create_fn(data)