from __future__ import annotations
import json
import logging
import os
import shutil
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional

from .errors import IOCorruptionError
from .progress import Progress
from .utils import json_default, timestamp_slug

logger = logging.getLogger(__name__)

FILE_SUFFIX = ".db.json"
ROLLING_SUFFIX = ".old"
BACKUP_POLICIES = ("rolling", "timestamped", None)

SaveCallback = Callable[[Optional[BaseException]], None]


def db_path(base_dir: str, name: str) -> str:
    return os.path.join(base_dir, f"{name}{FILE_SUFFIX}")


def dumps(doc: Dict[str, Any]) -> str:
    return json.dumps(doc, ensure_ascii=False, default=json_default)


class FileStorage:
    """
    Whole-file JSON persistence for one store.

    Every write copies the previous file to a backup path first, then writes
    the new content to a temp sibling and atomically replaces the primary.
    Async writes run on a single worker thread, so they land in call order.
    """

    def __init__(self, path: str, backup: Optional[str] = "rolling", progress: Optional[Progress] = None) -> None:
        if backup not in BACKUP_POLICIES:
            raise ValueError(f"backup must be one of {BACKUP_POLICIES}, got {backup!r}")
        self.path = path
        self.backup = backup
        self._progress = progress or Progress()
        self._executor: Optional[ThreadPoolExecutor] = None

    def exists(self) -> bool:
        return os.path.exists(self.path)

    # ----- read -----

    def read(self) -> Dict[str, Any]:
        """Read and parse the whole file. FileNotFoundError if absent."""
        with open(self.path, "r", encoding="utf-8") as f:
            text = f.read()
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            raise IOCorruptionError(f"Failed to parse {self.path}: {e}") from e
        if not isinstance(doc, dict) or not isinstance(doc.get("schemas"), dict) or not isinstance(doc.get("tables"), dict):
            raise IOCorruptionError(f"{self.path}: expected an object with 'schemas' and 'tables'")
        return doc

    # ----- backup -----

    def backup_path(self) -> Optional[str]:
        if self.backup == "rolling":
            return self.path + ROLLING_SUFFIX
        if self.backup == "timestamped":
            d, base = os.path.split(self.path)
            stem = base[: -len(FILE_SUFFIX)] if base.endswith(FILE_SUFFIX) else base
            candidate = os.path.join(d, f"{stem}.{timestamp_slug()}{FILE_SUFFIX}")
            n = 1
            while os.path.exists(candidate):
                candidate = os.path.join(d, f"{stem}.{timestamp_slug()}-{n}{FILE_SUFFIX}")
                n += 1
            return candidate
        return None

    def backup_now(self) -> Optional[str]:
        """Copy the current primary file to the backup path. Returns the copy's path."""
        if not self.exists():
            return None
        dest = self.backup_path()
        if dest is None:
            return None
        shutil.copyfile(self.path, dest)
        logger.debug("backup %s -> %s", self.path, dest)
        return dest

    # ----- write -----

    def write_sync(self, text: str) -> None:
        """Blocking write. Once async writes exist it queues behind them, so writes land in call order."""
        if self._executor is not None:
            self._executor.submit(self._write, text).result()
        else:
            self._write(text)

    def _write(self, text: str) -> None:
        self._progress.emit("save.start", 0, self.path)
        dest = self.backup_now()
        self._progress.emit("save.backup", 33, dest or "")
        self._replace_with(text)
        self._progress.emit("save.write", 66, self.path)
        logger.info("saved %s (%d bytes)", self.path, len(text))
        self._progress.emit("save.done", 100)

    def write_async(self, text: str, callback: Optional[SaveCallback] = None) -> "Future[None]":
        """
        Schedule the write on the worker thread. `text` must already be
        serialized; the caller may keep mutating the store meanwhile.
        """
        fut = self._get_executor().submit(self._write, text)

        def _done(f: "Future[None]") -> None:
            err = f.exception()
            if err is not None:
                logger.warning("async save of %s failed: %s", self.path, err)
            if callback is not None:
                callback(err)

        fut.add_done_callback(_done)
        return fut

    def _replace_with(self, text: str) -> None:
        d = os.path.dirname(self.path) or "."
        os.makedirs(d, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=FILE_SUFFIX, dir=d)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="embedded_json_db-save")
        return self._executor

    def close(self) -> None:
        """Wait for pending async writes and stop the worker."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
