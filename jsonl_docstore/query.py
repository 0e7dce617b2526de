from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from .errors import QueryShapeError
from .utils import is_number, strict_equal

FIELD_OPS = {"$eq", "$in", "$lt", "$gt"}
NUMERIC_OPS = {"$lt", "$gt"}
RESERVED_KEYS = ("$text", "$and", "$or")

@dataclass(frozen=True)
class TextQuery:
    text: str

@dataclass(frozen=True)
class AndQuery:
    subqueries: Tuple["Query", ...]

@dataclass(frozen=True)
class OrQuery:
    subqueries: Tuple["Query", ...]

@dataclass(frozen=True)
class Clause:
    field: str
    op: str
    operand: Any

@dataclass(frozen=True)
class FieldQuery:
    """Conjunction of clauses; no clauses matches every record."""
    clauses: Tuple[Clause, ...]

Query = Union[TextQuery, AndQuery, OrQuery, FieldQuery]

def parse_query(q: Any) -> Query:
    """
    Build a query tree from its dict form:

        {"$text": "word"}
        {"$and": [q, ...]} / {"$or": [q, ...]}
        {"age": {"$gt": 35}, "name": {"$in": ["Ann", "Bob"]}}
        {"name": "Ann"}                      # shorthand for {"$eq": "Ann"}

    Already-parsed nodes pass through. Anything else raises QueryShapeError.
    """
    if isinstance(q, (TextQuery, AndQuery, OrQuery, FieldQuery)):
        return q
    if q is None:
        return FieldQuery(())
    if not isinstance(q, Mapping):
        raise QueryShapeError(f"query must be a mapping, got {type(q).__name__}")

    reserved = [k for k in RESERVED_KEYS if k in q]
    if reserved:
        if len(q) != 1:
            raise QueryShapeError(f"{reserved[0]} cannot be combined with other keys: {list(q)}")
        key = reserved[0]
        arg = q[key]
        if key == "$text":
            if not isinstance(arg, str):
                raise QueryShapeError("$text expects a string")
            return TextQuery(arg)
        if not isinstance(arg, (list, tuple)):
            raise QueryShapeError(f"{key} expects a list of queries")
        subs = tuple(parse_query(sub) for sub in arg)
        return AndQuery(subs) if key == "$and" else OrQuery(subs)

    clauses: List[Clause] = []
    for field, cond in q.items():
        if not isinstance(field, str):
            raise QueryShapeError(f"field name must be a string, got {field!r}")
        if field.startswith("$"):
            raise QueryShapeError(f"unknown query operator {field}")
        if isinstance(cond, Mapping):
            if not cond:
                raise QueryShapeError(f"empty operator object for field {field!r}")
            for op, operand in cond.items():
                clauses.append(_parse_clause(field, op, operand))
        else:
            clauses.append(_parse_clause(field, "$eq", cond))
    return FieldQuery(tuple(clauses))

def _parse_clause(field: str, op: Any, operand: Any) -> Clause:
    if op not in FIELD_OPS:
        raise QueryShapeError(f"unknown operator {op!r} for field {field!r}")
    if op == "$in":
        if not isinstance(operand, (list, tuple)):
            raise QueryShapeError(f"$in for field {field!r} expects a list")
        operand = tuple(operand)
    elif op in NUMERIC_OPS and not is_number(operand):
        raise QueryShapeError(f"{op} for field {field!r} expects a number")
    return Clause(field, op, operand)

def _tokens(value: str) -> List[str]:
    return [w.lower() for w in value.split()]

def _clause_matches(clause: Clause, record: Mapping[str, Any]) -> bool:
    if clause.field not in record:
        return False
    value = record[clause.field]
    op = clause.op
    if op == "$eq":
        return strict_equal(value, clause.operand)
    if op == "$in":
        return any(strict_equal(value, x) for x in clause.operand)
    # $lt/$gt against a non-numeric value is a non-match, not an error
    if not is_number(value):
        return False
    if op == "$lt":
        return value < clause.operand
    return value > clause.operand

def _intersect(results: Sequence[List[int]]) -> List[int]:
    if not results:
        return []
    first, rest = results[0], results[1:]
    keep = [set(r) for r in rest]
    return [i for i in first if all(i in s for s in keep)]

def _union(results: Sequence[List[int]]) -> List[int]:
    seen: Dict[int, None] = {}
    for r in results:
        for i in r:
            seen.setdefault(i, None)
    return list(seen)

def evaluate(records: Sequence[Mapping[str, Any]], query: Query, full_text_fields: Sequence[str] = ()) -> List[int]:
    """
    Return positions of matching records, in input order for leaf queries.
    Positions stand in for record identity, so $and/$or are set operations
    over them.
    """
    if isinstance(query, TextQuery):
        needle = query.text.lower()
        out = []
        for i, rec in enumerate(records):
            for name in full_text_fields:
                v = rec.get(name)
                if isinstance(v, str) and needle in _tokens(v):
                    out.append(i)
                    break
        return out

    if isinstance(query, AndQuery):
        return _intersect([evaluate(records, sub, full_text_fields) for sub in query.subqueries])

    if isinstance(query, OrQuery):
        return _union([evaluate(records, sub, full_text_fields) for sub in query.subqueries])

    if isinstance(query, FieldQuery):
        return [i for i, rec in enumerate(records) if all(_clause_matches(c, rec) for c in query.clauses)]

    raise QueryShapeError(f"not a query node: {query!r}")
