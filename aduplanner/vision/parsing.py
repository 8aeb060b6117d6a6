"""
Parsing of vision model output

Models often wrap JSON in markdown fences or surround it with prose. The
parser strips fences, tries a direct parse, then falls back to the first
balanced {...} block that parses.
"""

import json
import re
from typing import Any, Dict, Iterator, Optional

from loguru import logger

from ..errors import MalformedResponse

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*[ \t]*\n?(.*?)\n?\s*```\s*$", re.DOTALL)
_INNER_FENCE_RE = re.compile(r"```(?:json|JSON)?[ \t]*\n(.*?)\n?```", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a leading/trailing markdown code fence, if present"""
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield each balanced {...} block, outermost first, skipping braces in strings"""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end: Optional[int] = None
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
        if end is None:
            return
        yield text[start:end + 1]
        start = text.find("{", start + 1)


def _loads_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def parse_model_json(text: Any) -> Dict[str, Any]:
    """
    Parse a JSON object from model output.

    Args:
        text: Raw model text, possibly fenced or embedded in prose

    Returns:
        The parsed object

    Raises:
        MalformedResponse: if no JSON object can be recovered
    """
    if not isinstance(text, str):
        raise MalformedResponse(f"Expected model text, got {type(text).__name__}")

    body = strip_code_fence(text)
    try:
        value = json.loads(body)
    except json.JSONDecodeError:
        pass
    else:
        if isinstance(value, dict):
            return value
        logger.debug(f"Model output is JSON {type(value).__name__}, looking for an embedded object")

    fenced = _INNER_FENCE_RE.search(text)
    if fenced:
        parsed = _loads_object(fenced.group(1).strip())
        if parsed is not None:
            logger.debug("Recovered JSON from a fenced block inside prose")
            return parsed

    for candidate in _balanced_objects(body):
        parsed = _loads_object(candidate)
        if parsed is not None:
            logger.debug("Recovered JSON object embedded in model output")
            return parsed

    preview = text[:120].replace("\n", " ")
    raise MalformedResponse(f"No JSON object found in model output: {preview!r}")
