"""Tests for translation/custom_parameters.py."""

import json
import math

import pytest

from translation.custom_parameters import add_custom_parameters, resolve_custom_parameters


@pytest.mark.parametrize("value", [None, "", "   "])
def test_empty_input_yields_no_parameters(value):
    assert resolve_custom_parameters(value) == []


@pytest.mark.parametrize("value", ["{not json", "[{\"key\": }]", "42", "{\"key\": \"a\", \"value\": 1}"])
def test_malformed_input_yields_no_parameters(value, caplog):
    assert resolve_custom_parameters(value) == []
    assert caplog.records  # logged, not raised


def test_value_typing():
    params = resolve_custom_parameters(json.dumps([
        {"key": "temperature", "value": "0.2"},
        {"key": "top_k", "value": "40"},
        {"key": "seed", "value": 1234},
        {"key": "huge", "value": 2 ** 70},
        {"key": "top_p", "value": 0.9},
        {"key": "stream", "value": False},
        {"key": "route", "value": "fallback"},
        {"key": "provider", "value": {"order": ["a", "b"]}},
        {"key": "stop", "value": ["\n"]},
        {"key": "nothing", "value": None},
    ]))
    as_dict = dict(params)

    assert as_dict["temperature"] == 0.2 and isinstance(as_dict["temperature"], float)
    assert as_dict["top_k"] == 40.0 and isinstance(as_dict["top_k"], float)
    assert as_dict["seed"] == 1234 and isinstance(as_dict["seed"], int)
    assert isinstance(as_dict["huge"], float)
    assert as_dict["top_p"] == 0.9
    assert as_dict["stream"] is False
    assert as_dict["route"] == "fallback"
    assert json.loads(as_dict["provider"]) == {"order": ["a", "b"]}
    assert json.loads(as_dict["stop"]) == ["\n"]
    assert as_dict["nothing"] == "null"


def test_order_preserved_and_incomplete_entries_skipped():
    params = resolve_custom_parameters(json.dumps([
        {"key": "b", "value": "x"},
        {"key": "missing_value"},
        {"value": "missing_key"},
        "not an object",
        {"key": "a", "value": "y"},
    ]))
    assert params == [("b", "x"), ("a", "y")]


def test_scientific_notation_is_numeric():
    assert resolve_custom_parameters('[{"key": "eps", "value": "1e-3"}]') == [("eps", 0.001)]


def test_nan_and_infinity_are_numeric():
    params = dict(resolve_custom_parameters(json.dumps([
        {"key": "a", "value": "NaN"},
        {"key": "b", "value": "Infinity"},
        {"key": "c", "value": "-Infinity"},
        {"key": "d", "value": "inf"},
        {"key": "e", "value": "Nanny"},
    ])))
    assert math.isnan(params["a"])
    assert params["b"] == math.inf
    assert params["c"] == -math.inf
    assert params["d"] == "inf"
    assert params["e"] == "Nanny"


def test_add_custom_parameters_later_keys_win():
    request = {"temperature": 0.3, "model": "m"}
    add_custom_parameters(request, [("temperature", 0.1), ("top_p", 0.5)])
    assert request == {"temperature": 0.1, "model": "m", "top_p": 0.5}
    assert add_custom_parameters({"a": 1}, None) == {"a": 1}
