from __future__ import annotations
import functools
import locale
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import QueryShapeError
from .utils import is_number

SortSpec = Union[Mapping[str, int], Iterable[Tuple[str, int]]]
ProjectionSpec = Union[Mapping[str, Any], Iterable[str]]

@dataclass(frozen=True)
class FindOptions:
    sort: Tuple[Tuple[str, int], ...] = ()
    projection: Optional[Tuple[str, ...]] = None
    skip: int = 0
    limit: Optional[int] = None

def build_options(
    sort: SortSpec | None = None,
    projection: ProjectionSpec | None = None,
    skip: int = 0,
    limit: Optional[int] = None,
) -> FindOptions:
    """Normalize find() keyword arguments, raising QueryShapeError on bad input."""
    keys: List[Tuple[str, int]] = []
    if sort is not None:
        items = sort.items() if isinstance(sort, Mapping) else sort
        for item in items:
            try:
                name, direction = item
            except (TypeError, ValueError):
                raise QueryShapeError(f"sort entry must be (field, direction), got {item!r}") from None
            if not isinstance(name, str):
                raise QueryShapeError(f"sort field must be a string, got {name!r}")
            if isinstance(direction, bool) or direction not in (1, -1):
                raise QueryShapeError(f"sort direction for {name!r} must be 1 or -1, got {direction!r}")
            keys.append((name, int(direction)))

    fields: Optional[Tuple[str, ...]] = None
    if projection is not None:
        if isinstance(projection, str):
            raise QueryShapeError("projection must be a mapping or a list of field names")
        if isinstance(projection, Mapping):
            names = [k for k, v in projection.items() if v]
        else:
            names = list(projection)
        for name in names:
            if not isinstance(name, str):
                raise QueryShapeError(f"projection field must be a string, got {name!r}")
        fields = tuple(dict.fromkeys(names))

    if isinstance(skip, bool) or not isinstance(skip, int) or skip < 0:
        raise QueryShapeError(f"skip must be a non-negative int, got {skip!r}")
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
        raise QueryShapeError(f"limit must be a non-negative int or None, got {limit!r}")

    return FindOptions(sort=tuple(keys), projection=fields, skip=skip, limit=limit)

def compare_values(a: Any, b: Any) -> int:
    """
    Three-way compare: locale collation for two strings, numeric order for
    two numbers, 0 for anything else (mixed types, missing, lists).
    """
    if isinstance(a, str) and isinstance(b, str):
        c = locale.strcoll(a, b)
        return (c > 0) - (c < 0)
    if is_number(a) and is_number(b):
        return (a > b) - (a < b)
    return 0

def sort_records(records: List[Dict[str, Any]], keys: Iterable[Tuple[str, int]]) -> List[Dict[str, Any]]:
    keys = list(keys)
    if not keys:
        return list(records)

    def cmp(a: Dict[str, Any], b: Dict[str, Any]) -> int:
        for name, direction in keys:
            c = compare_values(a.get(name), b.get(name)) * direction
            if c:
                return c
        return 0

    # sorted() is stable, full ties keep their input order
    return sorted(records, key=functools.cmp_to_key(cmp))

def project_records(records: Iterable[Dict[str, Any]], fields: Iterable[str]) -> List[Dict[str, Any]]:
    fields = list(fields)
    return [{f: rec[f] for f in fields if f in rec} for rec in records]

def shape(records: List[Dict[str, Any]], options: FindOptions) -> List[Dict[str, Any]]:
    """filter -> sort -> skip/limit -> project; sort always sees full records."""
    out = sort_records(records, options.sort)
    start = options.skip
    out = out[start:] if options.limit is None else out[start:start + options.limit]
    if options.projection is not None:
        out = project_records(out, options.projection)
    return out
