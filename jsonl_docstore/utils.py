from __future__ import annotations
import json
import math
from typing import Any

_JSON_SEPARATORS = (",", ":")

def dumps_compact(obj: Any) -> str:
    # Keeps insertion order; json escapes newlines so the result is one line.
    return json.dumps(obj, ensure_ascii=False, separators=_JSON_SEPARATORS, allow_nan=False)

def canonical_json(obj: Any) -> str:
    """Stable serialization used as structural identity of a record."""
    return json.dumps(obj, ensure_ascii=False, separators=_JSON_SEPARATORS, sort_keys=True, allow_nan=False)

def is_number(v: Any) -> bool:
    # bool is an int subclass but never counts as a number here
    return isinstance(v, (int, float)) and not isinstance(v, bool)

def is_finite_number(v: Any) -> bool:
    return is_number(v) and not (isinstance(v, float) and not math.isfinite(v))

def strict_equal(a: Any, b: Any) -> bool:
    """
    Equality without Python's bool/int cross-matching: True != 1 here,
    while 1 == 1.0 still holds. Lists compare element-wise.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(strict_equal(x, y) for x, y in zip(a, b))
    if type(a) is not type(b):
        return False
    return a == b
