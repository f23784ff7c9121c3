import pytest

from tender_generator.utils.exceptions import ParseError
from tender_generator.utils.parsing import extract_json_object


@pytest.mark.parametrize("text", [
    '```json\n{"passed": true}\n```',
    'Here you go:\n```\n{"passed": true}\n```\nThanks',
    'Result: {"passed": true} done',
    '{"passed": true}',
])
def test_extracts_object_from_common_wrappings(text):
    assert extract_json_object(text) == {"passed": True}


@pytest.mark.parametrize("text", ["", "   ", "no json here", '{"passed": tru', "[1, 2, 3]"])
def test_unparsable_output_raises_parse_error(text):
    with pytest.raises(ParseError) as exc_info:
        extract_json_object(text)
    assert exc_info.value.raw_output == text
