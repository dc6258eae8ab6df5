from __future__ import annotations
from typing import Any, Callable, Dict, Optional

from rich.console import Console

ProgressCallback = Callable[[Dict[str, Any]], None]


class Progress:
    """
    Thin wrapper around the optional `on_progress` callback.
    Events are dicts: {"phase": "save.write", "pct": 50, "msg": "..."}.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._cb = callback

    def emit(self, phase: str, pct: float = 0, msg: str = "") -> None:
        if self._cb is None:
            return
        pct = max(0, min(100, int(pct)))
        self._cb({"phase": phase, "pct": pct, "msg": msg})


def console_printer(console: Optional[Console] = None) -> ProgressCallback:
    """
    on_progress callback that prints events with rich:

        [progress] save.write 66% - /data/people.db.json
    """
    out = console or Console(stderr=True, highlight=False)

    def printer(evt: Dict[str, Any]) -> None:
        phase = evt.get("phase", "")
        pct = int(evt.get("pct", 0))
        msg = evt.get("msg", "")
        parts = [p for p in (phase, f"{pct}%", (f"- {msg}" if msg else "")) if p]
        out.print("[progress] " + " ".join(parts), markup=False)

    return printer
