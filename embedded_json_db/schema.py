from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .errors import IOCorruptionError, SchemaError, UnsupportedTypeError
from .types import ArrayOf, Descriptor, Scalar, parse_type


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str
    required: bool
    descriptor: Descriptor

    @property
    def is_date(self) -> bool:
        d = self.descriptor
        return isinstance(d, (Scalar, ArrayOf)) and d.kind == "date"

    def to_json(self) -> Dict[str, Any]:
        return {"type": self.type, "required": self.required}


class Schema:
    """
    Table name -> field name -> FieldSpec. Type strings are parsed once,
    here; validation works on the parsed descriptors.
    """

    def __init__(self, tables: Dict[str, Dict[str, FieldSpec]]) -> None:
        self._tables = tables

    # ----- construction -----

    @classmethod
    def verify(cls, raw: Any) -> "Schema":
        """
        Verify a caller supplied schema. Every field must carry a supported
        type and every referenced table must be declared; otherwise a
        SchemaError is raised and nothing is built.
        """
        return cls(cls._build(raw, check_tables=True))

    @classmethod
    def from_json(cls, raw: Any) -> "Schema":
        """Rebuild a persisted schema. Table references are trusted."""
        try:
            return cls(cls._build(raw, check_tables=False))
        except SchemaError as e:
            raise IOCorruptionError(f"persisted schema is invalid: {e}") from e

    @staticmethod
    def _build(raw: Any, *, check_tables: bool) -> Dict[str, Dict[str, FieldSpec]]:
        if not isinstance(raw, Mapping):
            raise UnsupportedTypeError("schema must be a mapping of table name -> fields")
        table_names = list(raw.keys()) if check_tables else None
        tables: Dict[str, Dict[str, FieldSpec]] = {}
        for table, fields in raw.items():
            if not isinstance(fields, Mapping):
                raise UnsupportedTypeError(f"table {table!r}: fields must be a mapping")
            specs: Dict[str, FieldSpec] = {}
            for name, fdef in fields.items():
                specs[name] = _field_spec(table, name, fdef, table_names)
            tables[table] = specs
        return tables

    # ----- access -----

    @property
    def table_names(self) -> List[str]:
        return list(self._tables.keys())

    def __contains__(self, table: object) -> bool:
        return table in self._tables

    def fields(self, table: str) -> Dict[str, FieldSpec]:
        return self._tables[table]

    def field(self, table: str, name: str) -> Optional[FieldSpec]:
        return self._tables.get(table, {}).get(name)

    def required_fields(self, table: str) -> List[str]:
        return [f.name for f in self._tables[table].values() if f.required]

    def date_fields(self, table: str) -> List[FieldSpec]:
        return [f for f in self._tables[table].values() if f.is_date]

    def to_json(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return {
            table: {name: spec.to_json() for name, spec in fields.items()}
            for table, fields in self._tables.items()
        }

    def __repr__(self) -> str:
        return f"Schema({self.to_json()!r})"


def _field_spec(table: str, name: str, fdef: Any, table_names: Optional[List[str]]) -> FieldSpec:
    # Shorthand: {"age": "number"} == {"age": {"type": "number"}}
    if isinstance(fdef, str):
        fdef = {"type": fdef}
    if not isinstance(fdef, Mapping):
        raise UnsupportedTypeError(f"'{table}'.'{name}': field definition must be a mapping or a type string")
    type_str = fdef.get("type")
    try:
        descriptor = parse_type(type_str, table_names)
    except SchemaError as e:
        raise type(e)(f"'{table}'.'{name}': {e}") from None
    return FieldSpec(
        name=name,
        type=str(descriptor),
        required=bool(fdef.get("required", False)),
        descriptor=descriptor,
    )
