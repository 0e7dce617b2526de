from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], None]

class Progress:
    """
    Forwards {"phase", "pct", "msg"} events to an optional user callback.
    A callback that raises is logged and ignored; it never aborts the operation.
    """
    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._cb = callback

    def emit(self, phase: str, pct: int, msg: str = "") -> None:
        if self._cb is None:
            return
        evt = {"phase": phase, "pct": max(0, min(100, int(pct))), "msg": msg}
        try:
            self._cb(evt)
        except Exception:
            logger.exception("progress callback failed for phase %s", phase)
