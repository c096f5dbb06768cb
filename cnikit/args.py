"""Loading ``K=V;K2=V2`` argument strings into dataclass containers."""

import dataclasses
import json
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Optional, Union


class ArgsError(ValueError):
    """The argument string could not be loaded."""


class UnmarshalableArgsError(ArgsError):
    """A known field cannot be filled from text."""


@dataclass(frozen=True)
class UnmarshallableBool:
    """A boolean that parses from "1", "0", "true" or "false" in any case."""

    value: bool = False

    def __bool__(self) -> bool:
        return self.value

    @classmethod
    def from_text(cls, text: str) -> "UnmarshallableBool":
        s = text.lower()
        if s in ("1", "true"):
            return cls(True)
        if s in ("0", "false"):
            return cls(False)
        raise ValueError(f"boolean unmarshal error: invalid input {s}")


class UnmarshallableString(str):
    """A string that parses from text as-is."""

    @classmethod
    def from_text(cls, text: str) -> "UnmarshallableString":
        return cls(text)


@dataclass
class CommonArgs:
    """Arguments every argument container understands."""

    ignore_unknown: UnmarshallableBool = field(
        default=UnmarshallableBool(False), metadata={"arg": "IgnoreUnknown"}
    )


def _arg_name(f: dataclasses.Field) -> str:
    return f.metadata.get("arg", f.name)


def get_key_field(key: str, container: Any) -> Optional[dataclasses.Field]:
    """Return the dataclass field that the argument ``key`` fills, if any.

    A field answers to the name in its ``arg`` metadata, or else to its own name.
    """
    if not dataclasses.is_dataclass(container) or isinstance(container, type):
        return None
    return next((f for f in dataclasses.fields(container) if _arg_name(f) == key), None)


def _field_type(container: Any, f: dataclasses.Field) -> Any:
    typ = f.type
    if isinstance(typ, str):
        # Annotation left as text: fall back on the type of the current value.
        current = getattr(container, f.name, None)
        return type(current) if current is not None else None
    origin = typing.get_origin(typ)
    if origin is Union or origin is getattr(types, "UnionType", None):
        candidates = [a for a in typing.get_args(typ) if a is not type(None)]
        if len(candidates) == 1:
            typ = candidates[0]
    return typ


def _quote(s: str) -> str:
    return json.dumps(s)


def load_args(args: str, container: Any) -> None:
    """Parse ``args`` of the form ``K=V;K2=V2`` into the fields of ``container``."""
    if not args:
        return

    unknown: list = []
    for pair in args.split(";"):
        kv = pair.split("=")
        if len(kv) != 2:
            raise ArgsError(f"ARGS: invalid pair {_quote(pair)}")
        key, value = kv
        key_field = get_key_field(key, container)
        if key_field is None:
            unknown.append(pair)
            continue

        typ = _field_type(container, key_field)
        parser = getattr(typ, "from_text", None) if typ is not None else None
        if not callable(parser):
            type_name = getattr(typ, "__name__", str(typ))
            raise UnmarshalableArgsError(
                f"ARGS: cannot unmarshal into field '{key}' - "
                f"type '{type_name}' does not provide from_text"
            )
        try:
            parsed = parser(value)
        except (ValueError, TypeError) as err:
            raise ArgsError(
                f"ARGS: error parsing value of pair {_quote(pair)}: {err}"
            ) from err
        setattr(container, key_field.name, parsed)

    ignore_field = get_key_field("IgnoreUnknown", container)
    ignore = ignore_field is not None and bool(getattr(container, ignore_field.name))
    if unknown and not ignore:
        listed = " ".join(_quote(a) for a in unknown)
        raise ArgsError(f"ARGS: unknown args [{listed}]")