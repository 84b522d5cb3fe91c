"""
Bundle extraction from the model's final message.

The model is asked for a JSON document of the form {"bundles": [...]}.
Parsing is strict first; on failure a single repair pass fixes the
syntax slips the model makes most often and parsing is retried once.
"""

import json
import logging
import random
import re
from typing import Any, Dict, List, Optional

from tripgen.fetchers.opengraph import random_fallback_image


logger = logging.getLogger(__name__)

# Number of characters of an unparseable document written to the log
LOG_SNIPPET_CHARS = 500

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CODE_BLOCK = re.compile(r"^```(?:json)?\s*([\s\S]*?)```\s*$")

# A quote followed by one of these (or end of text) closes a string
_STRING_TERMINATORS = {",", "}", "]", ":"}


def extract_message_text(output_items: List[Dict[str, Any]]) -> Optional[str]:
    """
    Return the text of the first message output item.

    output_text content is preferred; plain text content is the fallback.
    """
    message = next(
        (item for item in output_items if isinstance(item, dict) and item.get("type") == "message"),
        None,
    )
    if message is None:
        logger.warning("No message output found in response")
        return None

    content = [c for c in message.get("content") or [] if isinstance(c, dict)]
    for content_type in ("output_text", "text"):
        text = next((c.get("text") for c in content if c.get("type") == content_type and c.get("text")), None)
        if text:
            return text

    logger.warning("No text content in message output")
    return None


def _escape_stray_quotes(text: str) -> str:
    """Escape quotes inside string values that would otherwise end the string early."""
    out = []
    in_string = False
    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if not in_string:
            if char == '"':
                in_string = True
            out.append(char)
            i += 1
            continue

        if char == "\\" and i + 1 < length:
            out.append(text[i : i + 2])
            i += 2
            continue

        if char == '"':
            j = i + 1
            while j < length and text[j] in " \t\r\n":
                j += 1
            if j == length or text[j] in _STRING_TERMINATORS:
                in_string = False
                out.append(char)
            else:
                out.append('\\"')
            i += 1
            continue

        out.append(char)
        i += 1
    return "".join(out)


def repair_json(text: str) -> str:
    """
    Apply the repair pass.

    1. Unwrap a markdown code block around the document
    2. Drop trailing commas before a closing brace or bracket
    3. Escape quotes that would close a string value early
    """
    repaired = text.strip()
    match = _CODE_BLOCK.match(repaired)
    if match:
        repaired = match.group(1).strip()
    repaired = _TRAILING_COMMA.sub(r"\1", repaired)
    return _escape_stray_quotes(repaired)


def _bundles_from(parsed: Any) -> Optional[List[Any]]:
    if not isinstance(parsed, dict):
        return None
    bundles = parsed.get("bundles")
    return bundles if isinstance(bundles, list) else None


def extract_bundles(raw_text: Optional[str]) -> Optional[List[Any]]:
    """
    Parse the bundles array out of the model's final text.

    Args:
        raw_text: Final message text

    Returns:
        The bundles array unchanged, or None when the text has no usable
        bundles even after repair
    """
    if not raw_text:
        return None

    try:
        return _bundles_from(json.loads(raw_text))
    except ValueError as e:
        logger.warning(f"Failed to parse bundles, attempting repair: {e}")

    try:
        bundles = _bundles_from(json.loads(repair_json(raw_text)))
    except ValueError as e:
        logger.error(f"JSON repair failed: {e} | text={raw_text[:LOG_SNIPPET_CHARS]!r}")
        return None

    logger.info(f"Recovered {len(bundles or [])} bundles after JSON repair")
    return bundles


def bundle_cover_image(bundle: Dict[str, Any], rng: Optional[random.Random] = None) -> str:
    """First event image among key events, then minor events, else a fallback asset."""
    for key in ("keyEvents", "minorEvents"):
        for event in bundle.get(key) or []:
            if isinstance(event, dict) and isinstance(event.get("imageUrl"), str) and event["imageUrl"].strip():
                return event["imageUrl"]
    return random_fallback_image(rng)


def assign_cover_images(bundles: List[Any], rng: Optional[random.Random] = None) -> List[Any]:
    """Set each bundle's imageUrl from its events. Non-object entries are left alone."""
    for bundle in bundles:
        if isinstance(bundle, dict):
            bundle["imageUrl"] = bundle_cover_image(bundle, rng)
    return bundles
