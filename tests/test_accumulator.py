"""
Tests for folding documents into a collection schema.
"""

import threading

import pytest

from mongots.accumulator import CollectionSchema, InferenceOptions, fold_document
from mongots.errors import PoisonedSchemaError
from mongots.types import BOOLEAN, MAP, NUMBER, STRING, UNDEFINED, object_of, union_of


def fold(schema, *documents, options=InferenceOptions()):
    for document in documents:
        schema.fold(document, options)
    return schema.snapshot()


def test_missing_field_becomes_optional():
    fields = fold(CollectionSchema("c"), {"a": 1, "b": 2}, {"a": 3})
    assert fields == {"a": NUMBER, "b": union_of([NUMBER, UNDEFINED])}


def test_field_seen_late_is_not_retroactively_optional():
    schema = CollectionSchema("c")
    assert fold(schema, {"a": 1}, {"a": 2, "b": "x"}) == {"a": NUMBER, "b": STRING}

    # only documents folded after b was seen can mark it optional
    assert fold(schema, {"a": 3}) == {"a": NUMBER, "b": union_of([STRING, UNDEFINED])}


def test_empty_document_marks_everything_optional():
    fields = fold(CollectionSchema("c"), {"a": 1, "b": True}, {})
    assert fields == {"a": union_of([NUMBER, UNDEFINED]), "b": union_of([BOOLEAN, UNDEFINED])}


def test_types_widen_across_documents():
    fields = fold(CollectionSchema("c"), {"a": 1}, {"a": "x"}, {"a": 2})
    assert fields == {"a": union_of([NUMBER, STRING])}


def test_no_documents_gives_empty_schema():
    schema = CollectionSchema("c")
    assert schema.snapshot() == {}
    assert len(schema) == 0
    assert schema.documents == 0


def test_map_override():
    options = InferenceOptions(parse_field_as_map=frozenset({("c", "f")}))
    fields = fold(CollectionSchema("c"), {"f": {"x": 1}, "g": {"x": 1}}, {"f": {"y": "z"}, "g": {"x": 2}},
                  options=options)
    assert fields["f"] == MAP
    assert fields["g"] == object_of({"x": NUMBER})


def test_map_override_is_scoped_to_collection():
    options = InferenceOptions(parse_field_as_map=frozenset({("other", "f")}))
    fields = fold(CollectionSchema("c"), {"f": {"x": 1}}, options=options)
    assert fields["f"] == object_of({"x": NUMBER})


def test_map_override_field_can_still_be_optional():
    options = InferenceOptions(parse_field_as_map=frozenset({("c", "f")}))
    fields = fold(CollectionSchema("c"), {"f": {"x": 1}}, {"a": 1}, options=options)
    assert fields["f"] == union_of([MAP, UNDEFINED])


def test_fold_document_function():
    schema = CollectionSchema("c")
    fold_document(schema, {"a": 1})
    assert schema["a"] == NUMBER
    assert "a" in schema
    assert schema.documents == 1


def test_snapshot_is_sorted_copy():
    schema = CollectionSchema("c")
    schema.fold({"z": 1, "a": 2})
    snapshot = schema.snapshot()
    assert list(snapshot) == ["a", "z"]
    snapshot["a"] = STRING
    assert schema["a"] == NUMBER


class ExplodingDocument(dict):
    def items(self):
        raise RuntimeError("lost connection while decoding")


def test_failed_fold_poisons_the_schema():
    schema = CollectionSchema("c")
    schema.fold({"a": 1})

    with pytest.raises(PoisonedSchemaError):
        schema.fold(ExplodingDocument(a=1))

    assert schema.poisoned
    with pytest.raises(PoisonedSchemaError):
        schema.fold({"a": 2})
    with pytest.raises(PoisonedSchemaError):
        schema.snapshot()


def test_concurrent_folds_are_atomic():
    schema = CollectionSchema("c")
    documents = [{"a": i, "b": str(i), "c": [i]} for i in range(200)]

    def worker(chunk):
        for document in chunk:
            schema.fold(document)

    threads = [threading.Thread(target=worker, args=(documents[i::8],)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    fields = schema.snapshot()
    assert schema.documents == 200
    assert fields["a"] == NUMBER
    assert fields["b"] == STRING
    assert not any(t.is_optional for t in fields.values())
