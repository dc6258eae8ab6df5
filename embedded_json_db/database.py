from __future__ import annotations
import copy
import logging
import os
from concurrent.futures import Future
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import (
    IOCorruptionError,
    MissingFieldError,
    NotFoundError,
    TypeMismatchError,
    UnknownFieldError,
    ValidationError,
)
from .progress import Progress, ProgressCallback
from .query import Query, evaluate
from .schema import Schema
from .storage import FileStorage, SaveCallback, db_path, dumps
from .types import check_field
from .utils import new_id, parse_iso

logger = logging.getLogger(__name__)

ID_FIELD = "_id"

Entry = Dict[str, Any]
QueryArg = Union[Query, Sequence[Query]]


def _resolve_dir(base_dir: Optional[str]) -> str:
    return os.path.abspath(base_dir or os.getcwd())


def _stored(value: Any) -> Any:
    # Detached from the caller; arrays are always kept as lists
    value = copy.deepcopy(value)
    if isinstance(value, tuple):
        return list(value)
    return value


class EntryUpdate:
    """
    Pending update of one entry. `entry` is a detached working copy; nothing
    changes in the store until commit(), which revalidates every field and
    swaps the stored entry for the copy. A failed commit leaves the stored
    entry untouched.

        upd = db.update_by_id("people", rid)
        upd.entry["age"] = 31
        upd.commit()

    Also usable as a context manager that commits on a clean exit:

        with db.update_by_id("people", rid) as entry:
            entry["age"] = 31
    """
    __slots__ = ("_db", "table", "id", "entry")

    def __init__(self, db: "Database", table: str, rec_id: str, entry: Entry) -> None:
        self._db = db
        self.table = table
        self.id = rec_id
        self.entry = entry

    def commit(self) -> Entry:
        return self._db._commit_update(self)

    def __enter__(self) -> Entry:
        return self.entry

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()

    def __repr__(self) -> str:
        return f"EntryUpdate({self.table!r}, {self.id!r})"


class Database:
    """
    In-memory table store backed by a single JSON file at
    `<base_dir>/<name>.db.json`.

    If the file exists it is loaded and its persisted schema wins over the
    `schema` argument; otherwise `schema` is verified and an empty store is
    created (nothing is written until the first save).
    """

    def __init__(
        self,
        name: str,
        schema: Optional[Dict[str, Any]] = None,
        *,
        base_dir: Optional[str] = None,
        autosave: bool = False,
        backup: Optional[str] = "rolling",
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        if not name:
            raise ValueError("database name is required")
        self.name = name
        self.autosave = autosave
        self._progress = Progress(on_progress)
        self._path = db_path(_resolve_dir(base_dir), name)
        self._fs = FileStorage(self._path, backup=backup, progress=self._progress)
        self._schema: Schema
        self._tables: Dict[str, Dict[str, Entry]] = {}
        self._open(schema)

    @classmethod
    def connect(cls, name: str, *, base_dir: Optional[str] = None, **options: Any) -> "Database":
        """Open an existing database. FileNotFoundError if its file is absent."""
        path = db_path(_resolve_dir(base_dir), name)
        if not os.path.exists(path):
            raise FileNotFoundError(f"Database file not found: {path}")
        return cls(name, None, base_dir=base_dir, **options)

    def _open(self, schema: Optional[Dict[str, Any]]) -> None:
        self._progress.emit("open.start", 0, self._path)
        if self._fs.exists():
            self._load()
        else:
            self._create(schema)
        self._progress.emit("open.done", 100)

    def _create(self, schema: Optional[Dict[str, Any]]) -> None:
        if schema is None:
            raise ValueError(f"{self._path} does not exist and no schema was given")
        self._schema = Schema.verify(schema)
        self._tables = {table: {} for table in self._schema.table_names}
        logger.info("created database %s with tables %s", self._path, self._schema.table_names)
        self._progress.emit("open.create", 50, self._path)

    def _load(self) -> None:
        doc = self._fs.read()
        self._schema = Schema.from_json(doc["schemas"])
        tables: Dict[str, Dict[str, Entry]] = {}
        for table in self._schema.table_names:
            entries = doc["tables"].get(table) or {}
            if not isinstance(entries, dict) or not all(isinstance(e, dict) for e in entries.values()):
                raise IOCorruptionError(f"{self._path}: table {table!r} must map ids to entry objects")
            tables[table] = dict(entries)
            date_fields = self._schema.date_fields(table)
            if not date_fields:
                continue
            for entry in tables[table].values():
                for spec in date_fields:
                    if spec.name not in entry:
                        continue
                    val = entry[spec.name]
                    if isinstance(val, list):
                        entry[spec.name] = [parse_iso(v) for v in val]
                    else:
                        entry[spec.name] = parse_iso(val)
        self._tables = tables
        logger.info("loaded database %s (%d entries)", self._path, sum(len(t) for t in tables.values()))
        self._progress.emit("open.load", 50, self._path)

    # ----- accessors -----

    def path(self) -> str:
        return self._path

    def tables(self) -> Dict[str, Dict[str, Entry]]:
        return self._tables

    def schemas(self) -> Schema:
        return self._schema

    def get_all_entries(self, table: str) -> Dict[str, Entry]:
        """The live table: id -> entry. Empty dict for a table with no entries."""
        return self._table(table)

    def count(self, table: str) -> int:
        return len(self._table(table))

    def _table(self, table: str) -> Dict[str, Entry]:
        try:
            return self._tables[table]
        except KeyError:
            raise NotFoundError(f"Table {table!r} not found.") from None

    def _entry(self, table: str, rec_id: str) -> Entry:
        entries = self._table(table)
        try:
            return entries[rec_id]
        except (KeyError, TypeError):
            raise NotFoundError(f"Entry ({table}:{rec_id}) not found.") from None

    # ----- validation -----

    def _validate_field(self, table: str, field: str, value: Any) -> None:
        spec = self._schema.field(table, field)
        if spec is None:
            raise UnknownFieldError(f"Table {table!r} has no field {field!r}")
        if value is None and spec.required:
            raise MissingFieldError(f"Field {table}.{field} is required")
        if not check_field(spec.descriptor, value, self._tables):
            raise TypeMismatchError(
                f"Type check failed: table {table}, field {field} ({spec.type}), value {value!r}"
            )

    def _validate_entry(self, table: str, entry: Entry) -> None:
        for field, value in entry.items():
            if field == ID_FIELD:
                continue
            self._validate_field(table, field, value)
        for field in self._schema.required_fields(table):
            if entry.get(field) is None:
                raise MissingFieldError(f"Field {table}.{field} is required")

    # ----- CRUD -----

    def insert(self, table: str, entry: Entry) -> Entry:
        """
        Validate `entry` against the table schema, assign a new `_id` and store
        a copy. Returns the stored entry. On failure nothing is stored.
        """
        entries = self._table(table)
        if not isinstance(entry, dict):
            raise ValidationError(f"entry must be a dict, got {type(entry).__name__}")
        if ID_FIELD in entry:
            raise ValidationError(f"{ID_FIELD} is assigned by the database")
        self._validate_entry(table, entry)

        rec = {k: _stored(v) for k, v in entry.items()}
        rec_id = new_id()
        rec[ID_FIELD] = rec_id
        entries[rec_id] = rec
        logger.debug("insert %s:%s", table, rec_id)
        self._autosave()
        return rec

    def find_by_id(self, table: str, rec_id: str) -> Entry:
        return self._entry(table, rec_id)

    def set_field_by_id(self, table: str, rec_id: str, field: str, value: Any) -> Entry:
        """Overwrite one field in place. Only that field is revalidated."""
        self._table(table)
        if field == ID_FIELD:
            raise ValidationError(f"{ID_FIELD} is immutable")
        self._validate_field(table, field, value)
        rec = self._entry(table, rec_id)
        rec[field] = _stored(value)
        logger.debug("set %s:%s.%s", table, rec_id, field)
        self._autosave()
        return rec

    def update_by_id(self, table: str, rec_id: str) -> EntryUpdate:
        """Start an update: returns an EntryUpdate holding a working copy."""
        rec = self._entry(table, rec_id)
        return EntryUpdate(self, table, rec_id, copy.deepcopy(rec))

    begin_update = update_by_id

    def _commit_update(self, upd: EntryUpdate) -> Entry:
        entries = self._table(upd.table)
        if upd.id not in entries:
            raise NotFoundError(f"Entry ({upd.table}:{upd.id}) not found.")
        if upd.entry.get(ID_FIELD, upd.id) != upd.id:
            raise ValidationError(f"{ID_FIELD} is immutable")
        self._validate_entry(upd.table, upd.entry)

        rec = {k: _stored(v) for k, v in upd.entry.items()}
        rec[ID_FIELD] = upd.id
        entries[upd.id] = rec
        logger.debug("update %s:%s", upd.table, upd.id)
        self._autosave()
        return rec

    def delete_by_id(self, table: str, rec_id: str) -> None:
        self._entry(table, rec_id)
        del self._tables[table][rec_id]
        logger.debug("delete %s:%s", table, rec_id)
        self._autosave()

    # ----- queries -----

    def find(self, query: QueryArg, logic: str = "AND", n: Optional[int] = None) -> Optional[Dict[str, Entry]]:
        """
        Evaluate one Query or a list of Queries, combined with `logic`
        ("AND" / "OR"). Returns {id: entry} or None if nothing matched.
        """
        return evaluate(self._tables, query, logic=logic, n=n)

    def find_all(self, query: QueryArg) -> Optional[Dict[str, Entry]]:
        return self.find(query, "AND")

    def find_any(self, query: QueryArg) -> Optional[Dict[str, Entry]]:
        return self.find(query, "OR")

    def find_one(self, query: QueryArg) -> Optional[Dict[str, Entry]]:
        return self.find(query, "AND", n=1)

    def find_n(self, n: int, query: QueryArg) -> Optional[Dict[str, Entry]]:
        return self.find(query, "AND", n=n)

    def find_any_one(self, query: QueryArg) -> Optional[Dict[str, Entry]]:
        return self.find(query, "OR", n=1)

    def find_any_n(self, n: int, query: QueryArg) -> Optional[Dict[str, Entry]]:
        return self.find(query, "OR", n=n)

    # ----- persistence -----

    def to_json(self) -> Dict[str, Any]:
        return {"schemas": self._schema.to_json(), "tables": self._tables}

    def save_sync(self) -> None:
        """Back up the current file, then write the whole store. Blocks."""
        self._fs.write_sync(dumps(self.to_json()))

    def save(self, callback: Optional[SaveCallback] = None) -> "Future[None]":
        """
        Non-blocking save. The store is serialized now; backup and write run
        in the background. `callback(error_or_None)` runs on completion.
        """
        return self._fs.write_async(dumps(self.to_json()), callback)

    def backup_now(self) -> Optional[str]:
        return self._fs.backup_now()

    def _autosave(self) -> None:
        if self.autosave:
            self.save_sync()

    def close(self) -> None:
        self._fs.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Database({self.name!r}, path={self._path!r})"


def open_db(name: str, schema: Optional[Dict[str, Any]] = None, **options: Any) -> Database:
    """Open `<base_dir>/<name>.db.json`, creating it from `schema` if it does not exist."""
    return Database(name, schema, **options)
