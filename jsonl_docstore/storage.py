from __future__ import annotations
import functools
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from .errors import MalformedLogError
from .utils import dumps_compact

logger = logging.getLogger(__name__)

LIVE_MARKER = "E"
DEAD_MARKER = "D"

@dataclass
class Row:
    live: bool
    data: Dict[str, Any]

    def to_line(self) -> str:
        marker = LIVE_MARKER if self.live else DEAD_MARKER
        return f"{marker}{dumps_compact(self.data)}\n"

class FileStorage:
    """
    Line-oriented record log. Every line is a one-character marker
    (E = live, D = tombstone) followed by a JSON object:

        E{"name":"Ann","age":30}
        D{"name":"Bob","age":40}

    Lines are only ever appended or flag-flipped by a full rewrite that
    re-emits every row in its original order.
    """
    def __init__(self, path: str, *, fsync: bool = False) -> None:
        self.path = path
        self.fsync = fsync

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def touch(self) -> None:
        d = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(d, exist_ok=True)
        with open(self.path, "a", encoding="utf-8"):
            pass

    def terminate_last_line(self) -> bool:
        """
        Add the missing newline after an unterminated last line so the next
        append starts on a line of its own. Returns True if the file changed.
        """
        with open(self.path, "rb+") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() == 0:
                return False
            f.seek(-1, os.SEEK_END)
            if f.read(1) == b"\n":
                return False
            f.seek(0, os.SEEK_END)
            f.write(b"\n")
            f.flush()
            if self.fsync:
                os.fsync(f.fileno())
        return True

    def load(self) -> List[Row]:
        with open(self.path, "r", encoding="utf-8", newline="") as f:
            contents = f.read()
        lines = contents.split("\n")
        # split() leaves one empty tail after the final newline; a last line
        # without newline is accepted as is (terminate_last_line repairs it)
        if lines and lines[-1] == "":
            lines.pop()
        rows: List[Row] = []
        for lineno, line in enumerate(lines, 1):
            rows.append(self._decode_line(line, lineno))
        logger.debug("loaded %d rows from %s", len(rows), self.path)
        return rows

    def _decode_line(self, line: str, lineno: int) -> Row:
        if not line:
            raise MalformedLogError(self.path, lineno, "empty line")
        marker = line[0]
        if marker == LIVE_MARKER:
            live = True
        elif marker == DEAD_MARKER:
            live = False
        else:
            raise MalformedLogError(self.path, lineno, f"invalid marker {marker!r}")
        try:
            data = json.loads(line[1:], parse_constant=functools.partial(self._reject_constant, lineno))
        except json.JSONDecodeError as e:
            raise MalformedLogError(self.path, lineno, f"undecodable payload: {e.msg}") from e
        if not isinstance(data, dict):
            raise MalformedLogError(self.path, lineno, "payload is not a JSON object")
        return Row(live=live, data=data)

    def _reject_constant(self, lineno: int, token: str) -> Any:
        raise MalformedLogError(self.path, lineno, f"non-standard JSON constant {token}")

    def append(self, record: Dict[str, Any]) -> None:
        line = Row(live=True, data=record).to_line()
        # One write call in append mode so the line lands at EOF as a unit
        with open(self.path, "a", encoding="utf-8", newline="") as f:
            f.write(line)
            f.flush()
            if self.fsync:
                os.fsync(f.fileno())
        logger.debug("appended %d chars to %s", len(line), self.path)

    def rewrite_all(self, rows: Iterable[Row]) -> None:
        """
        Replace the log with `rows` via temp file + os.replace.
        On failure the temp file is removed and the original log stays intact.
        """
        target = os.path.abspath(self.path)
        directory = os.path.dirname(target)
        fd, tmp_path = tempfile.mkstemp(prefix=os.path.basename(target) + ".", suffix=".tmp", dir=directory)
        n = 0
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                for row in rows:
                    f.write(row.to_line())
                    n += 1
                f.flush()
                if self.fsync:
                    os.fsync(f.fileno())
            self.replace_file(tmp_path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise
        logger.info("rewrote %s with %d rows", self.path, n)

    def replace_file(self, tmp_path: str) -> None:
        os.replace(tmp_path, self.path)
        if self.fsync and os.name == "posix":
            dir_fd = os.open(os.path.dirname(os.path.abspath(self.path)), os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
