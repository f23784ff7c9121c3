import json
import re
from typing import Any, Dict

from .exceptions import ParseError

_FENCED_JSON = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)
_FENCED_ANY = re.compile(r"```\s*\n(.*?)\n\s*```", re.DOTALL)
_BARE_OBJECT = re.compile(r"(\{.*\})", re.DOTALL)


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Pulls a JSON object out of model output: a ```json fence, any fence, or
    the outermost braces, in that order.

    Raises:
        ParseError: If no JSON object can be decoded.
    """
    if not text or not text.strip():
        raise ParseError("Model returned an empty response.", raw_output=text)

    match = _FENCED_JSON.search(text) or _FENCED_ANY.search(text) or _BARE_OBJECT.search(text)
    candidate = match.group(1) if match else text
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"Could not decode JSON from model response: {e}", raw_output=text) from e
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}.", raw_output=text)
    return data
