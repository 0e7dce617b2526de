import pytest
from jsonl_docstore import (
    AndQuery, Clause, FieldQuery, OrQuery, QueryShapeError, TextQuery, evaluate, parse_query,
)

RECORDS = [
    {"name": "Ann", "age": 30, "bio": "fast and curious", "tags": ["a", "b"]},
    {"name": "Bob", "age": 40, "bio": "Slow but Steady"},
    {"name": "Cid", "age": 10, "bio": "fast-ish"},
    {"name": "Dee", "age": "unknown", "bio": "FAST learner"},
]

def names(idx):
    return [RECORDS[i]["name"] for i in idx]

def run(q):
    return names(evaluate(RECORDS, parse_query(q), ["bio"]))

def test_parse_shapes():
    assert parse_query({"$text": "x"}) == TextQuery("x")
    assert parse_query({"$and": []}) == AndQuery(())
    assert parse_query({"$or": [{"age": {"$lt": 3}}]}) == OrQuery((FieldQuery((Clause("age", "$lt", 3),)),))
    assert parse_query({"name": "Ann"}) == FieldQuery((Clause("name", "$eq", "Ann"),))
    assert parse_query(None) == FieldQuery(())
    q = TextQuery("y")
    assert parse_query(q) is q

@pytest.mark.parametrize("bad", [
    {"$text": "x", "name": {"$eq": "Ann"}},
    {"$text": 5},
    {"$and": {"name": "Ann"}},
    {"$nor": []},
    {"name": {"$regex": "A"}},
    {"name": {}},
    {"age": {"$lt": "10"}},
    {"age": {"$gt": True}},
    {"name": {"$in": "Ann"}},
    ["name"],
])
def test_bad_shapes_fail_fast(bad):
    with pytest.raises(QueryShapeError):
        parse_query(bad)

def test_text_matches_whole_tokens_case_insensitive():
    assert run({"$text": "fast"}) == ["Ann", "Dee"]
    assert run({"$text": "FAS"}) == []
    assert run({"$text": "steady"}) == ["Bob"]

def test_text_only_searches_configured_fields():
    idx = evaluate(RECORDS, parse_query({"$text": "ann"}), ["bio"])
    assert idx == []
    idx = evaluate(RECORDS, parse_query({"$text": "ann"}), ["bio", "name"])
    assert names(idx) == ["Ann"]

def test_numeric_boundaries():
    assert run({"age": {"$lt": 30}}) == ["Cid"]
    assert run({"age": {"$gt": 30}}) == ["Bob"]
    assert run({"age": {"$lt": 30.5, "$gt": 29}}) == ["Ann"]

def test_lt_gt_on_non_numeric_value_is_silent_non_match():
    assert "Dee" not in run({"age": {"$lt": 1000}})
    assert run({"name": {"$gt": 0}}) == []

def test_eq_and_in():
    assert run({"name": {"$eq": "Bob"}}) == ["Bob"]
    assert run({"age": {"$in": [10, 40, 99]}}) == ["Bob", "Cid"]
    assert run({"age": {"$in": []}}) == []
    assert run({"tags": {"$eq": ["a", "b"]}}) == ["Ann"]
    assert run({"missing": {"$in": [None]}}) == []

def test_eq_is_strict_about_types():
    recs = [{"v": 1}, {"v": True}, {"v": "1"}, {"v": 1.0}]
    assert evaluate(recs, parse_query({"v": {"$eq": 1}})) == [0, 3]
    assert evaluate(recs, parse_query({"v": {"$in": [True]}})) == [1]

def test_multi_field_object_is_conjunction():
    assert run({"name": {"$in": ["Ann", "Bob"]}, "age": {"$gt": 35}}) == ["Bob"]

def test_and_is_intersection_in_first_list_order():
    q = {"$and": [{"age": {"$in": [40, 30, 10]}}, {"$text": "fast"}]}
    assert run(q) == ["Ann"]
    assert run({"$and": [{"age": {"$gt": 0}}, {"age": {"$lt": 0}}]}) == []

def test_or_is_deduplicated_union():
    q = {"$or": [{"$text": "fast"}, {"name": {"$eq": "Ann"}}, {"age": {"$lt": 20}}]}
    assert run(q) == ["Ann", "Dee", "Cid"]

def test_empty_combinators_match_nothing():
    assert run({"$and": []}) == []
    assert run({"$or": []}) == []

def test_empty_field_query_matches_everything():
    assert run({}) == ["Ann", "Bob", "Cid", "Dee"]

def test_set_algebra_against_leaf_results():
    q1 = {"age": {"$gt": 15}}
    q2 = {"$text": "fast"}
    r1, r2 = set(run(q1)), set(run(q2))
    assert set(run({"$and": [q1, q2]})) <= r1 & r2
    assert set(run({"$or": [q1, q2]})) == r1 | r2

def test_nested_combinators():
    q = {"$or": [{"$and": [{"$text": "fast"}, {"age": {"$gt": 20}}]}, {"name": "Bob"}]}
    assert run(q) == ["Ann", "Bob"]
