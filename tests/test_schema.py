from __future__ import annotations

from oorbforms.schema import (
    build_property,
    clean_empty_recursive,
    parse_fields,
    schema_from_fields,
    validate_answers,
)


def test_parse_fields_generates_missing_ids():
    fields, errors = parse_fields([{"type": "text", "label": "Name"}])
    assert errors == []
    assert fields[0]["id"].startswith("f_")
    assert fields[0]["options"] == []
    assert fields[0]["validation"] == {}


def test_parse_fields_reports_problems():
    fields, errors = parse_fields(
        [
            {"id": "a", "type": "text", "label": "A"},
            {"id": "a", "type": "text", "label": "Again"},
            {"id": "1bad", "type": "nope", "label": ""},
            {"id": "n", "type": "number", "label": "N", "validation": {"min": 5, "max": 1}},
            {"id": "p", "type": "text", "label": "P", "validation": {"pattern": "("}},
            "not a dict",
        ]
    )
    assert len(fields) == 5
    assert any("duplicate id" in error for error in errors)
    assert any("unknown type" in error for error in errors)
    assert any("label is required" in error for error in errors)
    assert any("must start with a letter" in error for error in errors)
    assert any("min is greater than max" in error for error in errors)
    assert any("pattern" in error for error in errors)
    assert any("field 6" in error for error in errors)


def test_parse_fields_rejects_non_list():
    assert parse_fields({"id": "a"}) == ([], ["fields must be a list"])
    assert parse_fields(None) == ([], [])


def test_rating_max_is_bounded():
    _, errors = parse_fields(
        [{"id": "r", "type": "rating", "label": "R", "validation": {"max": 20}}]
    )
    assert errors


def test_build_property_for_choice_fields():
    radio = build_property({"id": "c", "type": "radio", "label": "C", "options": ["x", "y"]})
    assert radio["enum"] == ["x", "y"]
    checkbox = build_property(
        {"id": "t", "type": "checkbox", "label": "T", "options": ["x"], "required": True}
    )
    assert checkbox["type"] == "array"
    assert checkbox["minItems"] == 1


def test_schema_from_fields_lists_required_keys():
    fields, _ = parse_fields(
        [
            {"id": "a", "type": "text", "label": "A", "required": True},
            {"id": "b", "type": "date", "label": "B"},
        ]
    )
    schema = schema_from_fields(fields)
    assert schema["required"] == ["a"]
    assert schema["additionalProperties"] is False
    assert list(schema["properties"]) == ["a", "b"]


def test_clean_empty_recursive():
    assert clean_empty_recursive({"a": "", "b": [], "c": [None, "x"], "d": "  ", "e": 0}) == {
        "c": ["x"],
        "e": 0,
    }
    assert clean_empty_recursive({"a": None}) is None


def test_validate_answers_by_type():
    fields, _ = parse_fields(
        [
            {"id": "when", "type": "date", "label": "When"},
            {"id": "at", "type": "time", "label": "At"},
            {"id": "site", "type": "url", "label": "Site"},
            {"id": "tel", "type": "phone", "label": "Phone"},
            {"id": "stars", "type": "rating", "label": "Stars"},
            {
                "id": "bio",
                "type": "textarea",
                "label": "Bio",
                "validation": {"max_length": 5},
            },
        ]
    )
    ok, errors = validate_answers(
        fields,
        {
            "when": "2024-02-29",
            "at": "13:45",
            "site": "https://example.com",
            "tel": "+1 555 0100",
            "stars": "4",
            "bio": "short",
        },
    )
    assert errors == []
    assert ok["stars"] == 4

    _, errors = validate_answers(
        fields,
        {
            "when": "2024-02-30",
            "at": "25:00",
            "site": "example.com",
            "tel": "call me",
            "stars": 6,
            "bio": "far too long",
        },
    )
    assert {error["field"] for error in errors} == {"when", "at", "site", "tel", "stars", "bio"}


def test_parse_fields_rejects_non_finite_bounds():
    fields, errors = parse_fields(
        [
            {"id": "t", "type": "text", "label": "T", "validation": {"max_length": "inf"}},
            {"id": "r", "type": "rating", "label": "R", "validation": {"max": "nan"}},
            {"id": "n", "type": "number", "label": "N", "validation": {"min": float("nan")}},
        ]
    )
    assert errors == [
        "field 1: max_length must be a number",
        "field 2: max must be a number",
        "field 3: min must be a number",
    ]
    assert [field["validation"] for field in fields] == [{}, {}, {}]


def test_parse_fields_treats_null_strings_as_empty():
    fields, errors = parse_fields(
        [{"id": "a", "type": "text", "label": None, "description": None, "placeholder": None}]
    )
    assert errors == ["field 1: label is required"]
    assert fields[0]["label"] == ""
    assert fields[0]["description"] == ""
    assert fields[0]["placeholder"] == ""


def test_validate_answers_rejects_non_finite_numbers():
    fields = [{"id": "age", "type": "number", "label": "Age"}]
    for value in ("NaN", "1e400", float("nan"), float("-inf")):
        _, errors = validate_answers(fields, {"age": value})
        assert [error["field"] for error in errors] == ["age"], value
