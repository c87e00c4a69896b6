from __future__ import annotations

from newswithfriends.services.json_repair import repair_json


def test_strips_fences_and_trailing_commas() -> None:
    assert repair_json('```json\n[{"a":1},]\n```') == [{"a": 1}]


def test_returns_none_for_prose() -> None:
    assert repair_json("not json at all") is None
    assert repair_json("") is None
    assert repair_json(None) is None


def test_trims_surrounding_prose() -> None:
    text = 'Sure! Here is the data you asked for:\n{"fullText": "Body", "authorNames": ["Ann"]}\nLet me know.'

    assert repair_json(text) == {"fullText": "Body", "authorNames": ["Ann"]}


def test_removes_control_characters_and_blank_lines() -> None:
    text = '[\n\n\n{"headline": "Storm\x07 warning",\n\n "rank": 1\t}\n]'

    assert repair_json(text) == [{"headline": "Storm warning", "rank": 1}]


def test_nested_trailing_commas() -> None:
    assert repair_json('{"items": [1, 2, 3,], "more": {"x": true,},}') == {
        "items": [1, 2, 3],
        "more": {"x": True},
    }


def test_closes_truncated_array_after_last_complete_object() -> None:
    text = '[{"fullHeadline": "One", "articleUrl": "/one"}, {"fullHeadline": "Two", "articleUrl": "/t'

    assert repair_json(text) == [{"fullHeadline": "One", "articleUrl": "/one"}]


def test_unrecoverable_structure_returns_none() -> None:
    assert repair_json('{"a": [1, 2}') is None
