from .database import Database, EntryUpdate, open_db
from .errors import (
    DBError,
    InvalidQueryTypeError,
    IOCorruptionError,
    MissingFieldError,
    MissingTypeError,
    NotFoundError,
    SchemaError,
    TypeMismatchError,
    UnknownEntryError,
    UnknownFieldError,
    UnknownTableError,
    UnsupportedTypeError,
    ValidationError,
)
from .progress import console_printer
from .query import Query
from .schema import FieldSpec, Schema
from .types import ArrayOf, Reference, ReferenceArray, Scalar, check_field, parse_type
from .utils import new_id

__all__ = [
    "Database",
    "EntryUpdate",
    "open_db",
    "Query",
    "console_printer",
    "Schema",
    "FieldSpec",
    "Scalar",
    "ArrayOf",
    "Reference",
    "ReferenceArray",
    "check_field",
    "parse_type",
    "new_id",
    "DBError",
    "SchemaError",
    "MissingTypeError",
    "UnsupportedTypeError",
    "UnknownTableError",
    "ValidationError",
    "TypeMismatchError",
    "UnknownFieldError",
    "UnknownEntryError",
    "MissingFieldError",
    "NotFoundError",
    "InvalidQueryTypeError",
    "IOCorruptionError",
]

__version__ = "0.1.0"
