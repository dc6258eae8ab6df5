from __future__ import annotations


class DBError(Exception):
    """Base class for all embedded_json_db errors."""


# ----- Schema (raised only while creating a store) -----

class SchemaError(DBError):
    pass


class MissingTypeError(SchemaError):
    pass


class UnsupportedTypeError(SchemaError):
    pass


class UnknownTableError(SchemaError):
    """A reference names a table the schema does not declare."""


# ----- Entry validation (insert / set_field_by_id / commit) -----

class ValidationError(DBError):
    pass


class TypeMismatchError(ValidationError):
    pass


class UnknownFieldError(ValidationError):
    pass


class UnknownEntryError(ValidationError):
    """A reference points at an id that has no entry in its table."""


class MissingFieldError(ValidationError):
    pass


class NotFoundError(DBError, LookupError):
    pass


class InvalidQueryTypeError(DBError, TypeError):
    pass


class IOCorruptionError(DBError):
    """The database file exists but can not be parsed."""
