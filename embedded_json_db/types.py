from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Collection, Dict, Mapping, Optional, Union

from .errors import MissingTypeError, UnknownEntryError, UnknownTableError, UnsupportedTypeError

SCALAR_KINDS = ("number", "string", "date")


@dataclass(frozen=True)
class Scalar:
    kind: str

    def __str__(self) -> str:
        return self.kind


@dataclass(frozen=True)
class ArrayOf:
    kind: str

    def __str__(self) -> str:
        return f"array {self.kind}"


@dataclass(frozen=True)
class Reference:
    table: str

    def __str__(self) -> str:
        return f"id {self.table}"


@dataclass(frozen=True)
class ReferenceArray:
    table: str

    def __str__(self) -> str:
        return f"array id {self.table}"


Descriptor = Union[Scalar, ArrayOf, Reference, ReferenceArray]


def _check_kind(kind: str, type_str: str) -> str:
    if kind not in SCALAR_KINDS:
        raise UnsupportedTypeError(f"Not a supported type: {kind!r} (in {type_str!r})")
    return kind


def _check_table(table: str, table_names: Optional[Collection[str]]) -> str:
    # table_names=None: trusted input (persisted schema), skip existence check
    if table_names is not None and table not in table_names:
        raise UnknownTableError(f"Table {table!r} does not exist.")
    return table


def parse_type(type_str: Any, table_names: Optional[Collection[str]] = None) -> Descriptor:
    """
    Parse a type string into a descriptor:

        "number" | "string" | "date"          -> Scalar
        "array number" | ... | "array date"   -> ArrayOf
        "id <table>"                          -> Reference
        "array id <table>"                    -> ReferenceArray

    When `table_names` is given, referenced tables must be in it.
    """
    if type_str is None or (isinstance(type_str, str) and not type_str.strip()):
        raise MissingTypeError("field has undefined type")
    if isinstance(type_str, (list, tuple)):
        inner = type_str[0] if type_str else "type"
        raise UnsupportedTypeError(f"To create an array type, pass 'array {inner}'")
    if not isinstance(type_str, str):
        raise UnsupportedTypeError(f"Type must be a string, got {type(type_str).__name__}")

    tokens = type_str.split()
    if len(tokens) == 1:
        return Scalar(_check_kind(tokens[0], type_str))
    if len(tokens) == 2:
        head, target = tokens
        if head == "id":
            return Reference(_check_table(target, table_names))
        if head == "array":
            return ArrayOf(_check_kind(target, type_str))
        raise UnsupportedTypeError(f"Failed to parse type: {type_str!r}")
    if len(tokens) == 3 and tokens[0] == "array" and tokens[1] == "id":
        return ReferenceArray(_check_table(tokens[2], table_names))
    raise UnsupportedTypeError(f"Failed to parse type: {type_str!r}")


def check_scalar(kind: str, value: Any) -> bool:
    if kind == "number":
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            # arbitrary precision, always finite
            return True
        return isinstance(value, float) and math.isfinite(value)
    if kind == "string":
        return isinstance(value, str)
    if kind == "date":
        return isinstance(value, date)
    return False


def _table_of(tables: Mapping[str, Dict[str, Any]], name: str) -> Dict[str, Any]:
    if name not in tables:
        raise UnknownTableError(f"Referenced table {name!r} does not exist.")
    return tables[name]


def check_field(descriptor: Descriptor, value: Any, tables: Mapping[str, Dict[str, Any]]) -> bool:
    """
    Check one value against a descriptor.

    Returns False on a plain type mismatch. Reference descriptors consult
    `tables` and raise UnknownTableError / UnknownEntryError when the target
    table or entry is missing. Never mutates anything.
    """
    if isinstance(descriptor, Scalar):
        return check_scalar(descriptor.kind, value)

    if isinstance(descriptor, ArrayOf):
        if value is None:
            return True
        if not isinstance(value, (list, tuple)):
            return False
        return all(check_scalar(descriptor.kind, v) for v in value)

    if isinstance(descriptor, Reference):
        if value is None or value == "":
            return True
        if not isinstance(value, str):
            return False
        target = _table_of(tables, descriptor.table)
        if value not in target:
            raise UnknownEntryError(f"Referenced entry {descriptor.table}:{value} does not exist")
        return True

    if isinstance(descriptor, ReferenceArray):
        target = _table_of(tables, descriptor.table)
        if value is None:
            return True
        if not isinstance(value, (list, tuple)):
            return False
        for v in value:
            if not isinstance(v, str):
                return False
            if v not in target:
                raise UnknownEntryError(f"Referenced entry {descriptor.table}:{v} does not exist")
        return True

    raise TypeError(f"Unknown descriptor: {descriptor!r}")
