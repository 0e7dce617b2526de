from __future__ import annotations
import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .errors import ValidationError
from .progress import Progress, ProgressCallback
from .query import Query, evaluate, parse_query
from .shaper import ProjectionSpec, SortSpec, build_options, shape
from .storage import FileStorage, Row
from .utils import canonical_json, is_finite_number

logger = logging.getLogger(__name__)

class Database:
    """
    Embedded document store over a single marker-prefixed JSONL file.

    Operations on one instance are serialized by an internal lock. Nothing
    coordinates separate instances or processes: an insert landing between
    delete()'s load and rewrite is lost. Callers sharing a file must
    serialize access themselves.
    """
    def __init__(
        self,
        path: str,
        full_text_fields: Iterable[str] = (),
        *,
        create: bool = True,
        fsync: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.path = path
        if isinstance(full_text_fields, str):
            full_text_fields = (full_text_fields,)
        self.full_text_fields: tuple[str, ...] = tuple(full_text_fields)
        self._fs = FileStorage(path, fsync=fsync)
        self._progress = Progress(on_progress)
        self._lock = threading.RLock()
        if self._fs.exists():
            if self._fs.terminate_last_line():
                logger.warning("log %s ended without a newline; terminated last line", path)
        elif create:
            self._fs.touch()
            logger.debug("created empty log %s", path)

    def _load(self) -> List[Row]:
        self._progress.emit("load.start", 0, self.path)
        rows = self._fs.load()
        self._progress.emit("load.done", 100, f"{len(rows)} rows")
        return rows

    def rows(self) -> List[Row]:
        """All physical rows, live and tombstoned, in file order."""
        with self._lock:
            return self._load()

    def find(
        self,
        query: Mapping[str, Any] | Query | None = None,
        *,
        sort: SortSpec | None = None,
        projection: ProjectionSpec | None = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Return live records matching `query`, sorted then projected.

        sort:       {"age": -1, "name": 1} or [("age", -1), ("name", 1)]
        projection: {"name": 1} or ["name"]; missing fields are omitted
        """
        q = parse_query(query)
        opts = build_options(sort=sort, projection=projection, skip=skip, limit=limit)
        with self._lock:
            rows = self._load()
        live = [r.data for r in rows if r.live]
        matched = [live[i] for i in evaluate(live, q, self.full_text_fields)]
        logger.debug("find matched %d of %d live records", len(matched), len(live))
        out = shape(matched, opts)
        self._progress.emit("find.done", 100, f"{len(out)} records")
        return out

    def insert(self, record: Mapping[str, Any]) -> None:
        data = self._validate_record(record)
        with self._lock:
            self._fs.append(data)
        self._progress.emit("insert.done", 100)

    def delete(self, query: Mapping[str, Any] | Query) -> int:
        """
        Tombstone every live row matching `query` and rewrite the log.

        Rows are matched by canonical payload, so all live rows structurally
        identical to a matched record die together. Returns the number of
        rows tombstoned; the file is left untouched when nothing matches.
        """
        q = parse_query(query)
        with self._lock:
            rows = self._load()
            self._progress.emit("delete.start", 0)
            live = [r.data for r in rows if r.live]
            doomed = {canonical_json(live[i]) for i in evaluate(live, q, self.full_text_fields)}
            n = 0
            for row in rows:
                if row.live and canonical_json(row.data) in doomed:
                    row.live = False
                    n += 1
            if n:
                self._progress.emit("delete.rewrite", 50, f"{n} rows")
                self._fs.rewrite_all(rows)
            logger.debug("delete tombstoned %d rows", n)
        self._progress.emit("delete.done", 100, f"{n} rows")
        return n

    def _validate_record(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        if not isinstance(record, Mapping):
            raise ValidationError(f"record must be a mapping, got {type(record).__name__}")
        data: Dict[str, Any] = {}
        for key, value in record.items():
            if not isinstance(key, str):
                raise ValidationError(f"field name must be a string, got {key!r}")
            data[key] = self._validate_value(key, value)
        for name in self.full_text_fields:
            if name in data and not isinstance(data[name], str):
                logger.warning("full-text field %r holds %s; $text will never match it",
                               name, type(data[name]).__name__)
        return data

    @staticmethod
    def _validate_value(key: str, value: Any) -> Any:
        if isinstance(value, str) or is_finite_number(value):
            return value
        if isinstance(value, (list, tuple)):
            items = list(value)
            if all(isinstance(x, str) for x in items) or all(is_finite_number(x) for x in items):
                return items
            raise ValidationError(f"field {key!r}: list must hold only strings or only numbers")
        raise ValidationError(f"field {key!r}: unsupported value {value!r}")

    def __repr__(self) -> str:
        return f"Database(path={self.path!r}, full_text_fields={list(self.full_text_fields)!r})"
