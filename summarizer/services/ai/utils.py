"""
Helpers for cleaning model responses before JSON decoding.
"""
import re
import logging
from typing import Optional

logger = logging.getLogger(__name__)

THINK_PATTERN = re.compile(r'<think[^>]*>.*?</think>', re.DOTALL | re.IGNORECASE)
FENCE_PATTERN = re.compile(r'```(?:json)?\s*(.*?)\s*```', re.DOTALL)


def strip_think_tags(content: str) -> str:
    """Remove <think>...</think> reasoning blocks."""
    matches = THINK_PATTERN.findall(content)
    if matches:
        logger.debug(f"Stripping {len(matches)} think block(s) from response")
        content = THINK_PATTERN.sub('', content).strip()
    return content


def extract_json_from_markdown(content: str) -> str:
    """Return the body of a ```json fenced block, or the stripped content."""
    json_str = content.strip()
    if json_str.startswith('```'):
        match = FENCE_PATTERN.search(json_str)
        if match:
            json_str = match.group(1).strip()
        else:
            logger.warning("Content starts with ``` but no closing ``` found")
    return json_str


def find_json_in_text(text: str, expected_type: str = "object") -> Optional[str]:
    """
    Find the first balanced JSON object or array in text.

    Brackets inside string literals are skipped.

    Returns:
        The JSON substring, or None if no balanced one is found
    """
    if expected_type == "object":
        start_char, end_char = '{', '}'
    elif expected_type == "array":
        start_char, end_char = '[', ']'
    else:
        raise ValueError(f"expected_type must be 'object' or 'array', got: {expected_type}")

    first_start = text.find(start_char)
    if first_start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(first_start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == start_char:
            depth += 1
        elif ch == end_char:
            depth -= 1
            if depth == 0:
                return text[first_start:i + 1]

    return None


def clean_model_output(content: str) -> str:
    """Strip think blocks and markdown fences, then isolate the JSON object."""
    cleaned = extract_json_from_markdown(strip_think_tags(content))
    return find_json_in_text(cleaned, "object") or cleaned
