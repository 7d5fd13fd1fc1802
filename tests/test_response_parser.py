import pytest

from filter_translator.core.exceptions import MalformedCompletionError
from filter_translator.query.response_parser import parse_completion


def test_parses_bare_json():
    assert parse_completion('{"vehicleSearchQuery": {"mileageFrom": 50000}}') == {
        "vehicleSearchQuery": {"mileageFrom": 50000}
    }


def test_parses_empty_object():
    assert parse_completion("{}") == {}


def test_parses_fenced_json():
    text = '```json\n{"fuelTypes": [1]}\n```'
    assert parse_completion(text) == {"fuelTypes": [1]}


def test_parses_json_surrounded_by_prose():
    text = 'Here is the filter: {"includeCountries": ["DE"]} Hope it helps.'
    assert parse_completion(text) == {"includeCountries": ["DE"]}


@pytest.mark.parametrize("text", ["", "   ", "not json at all", "{broken", '{"a": }'])
def test_rejects_malformed_output(text):
    with pytest.raises(MalformedCompletionError):
        parse_completion(text)


def test_rejects_non_object_json():
    with pytest.raises(MalformedCompletionError) as exc_info:
        parse_completion("[1, 2, 3]")
    assert exc_info.value.raw_output == "[1, 2, 3]"
