"""Tests for the static term dictionary."""

import json

import pytest

from cocbot.dictionary import build_dictionary, load_dictionary
from cocbot.exceptions import DictionaryLoadError, ErrorCategory


def test_load_lowercases_keys(tmp_path):
    path = tmp_path / "dictionary.json"
    path.write_text(json.dumps({"Cthulhu": "Dreams.", "luck": "POW x5."}), encoding="utf-8")

    terms = load_dictionary(path)
    assert dict(terms) == {"cthulhu": "Dreams.", "luck": "POW x5."}


def test_definitions_keep_their_case(tmp_path):
    path = tmp_path / "dictionary.json"
    path.write_text(json.dumps({"SAN": "Sanity Points"}), encoding="utf-8")
    assert load_dictionary(path)["san"] == "Sanity Points"


def test_dictionary_is_read_only():
    terms = build_dictionary({"luck": "POW x5."})
    with pytest.raises(TypeError):
        terms["luck"] = "changed"


def test_case_collision_later_entry_wins():
    terms = build_dictionary({"Luck": "first", "luck": "second"})
    assert terms["luck"] == "second"
    assert len(terms) == 1


def test_missing_file(tmp_path):
    with pytest.raises(DictionaryLoadError) as exc_info:
        load_dictionary(tmp_path / "nope.json")
    assert exc_info.value.category == ErrorCategory.INFRASTRUCTURE
    assert exc_info.value.path.endswith("nope.json")


def test_invalid_json(tmp_path):
    path = tmp_path / "dictionary.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(DictionaryLoadError, match="not valid JSON"):
        load_dictionary(path)


@pytest.mark.parametrize("payload", [
    ["cthulhu", "luck"],
    {"luck": 50},
    {"luck": {"nested": "value"}},
])
def test_wrong_shape_rejected(tmp_path, payload):
    path = tmp_path / "dictionary.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(DictionaryLoadError, match="strings to strings"):
        load_dictionary(path)
