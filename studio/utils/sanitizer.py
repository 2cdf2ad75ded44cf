"""Narrow free-form model output down to its embedded JSON payload."""

import json
import logging

from studio.services.errors import ErrorKind, StudioError

logger = logging.getLogger("sanitizer")


def _strip_fence(text: str, fence: str) -> str:
    # Keep what sits between the first fence and the next closing fence
    text = text.split(fence, 1)[1]
    if "```" in text:
        text = text.split("```", 1)[0]
    return text


def sanitize_json_text(raw: str) -> str:
    """
    Return the outermost ``{...}`` / ``[...]`` span of ``raw``.

    A ```json fence is tried first, then a bare ``` fence. If no opening
    and closing bracket pair is found, the trimmed input comes back as-is.
    Never parses anything.
    """
    if not raw:
        return ""
    cleaned = raw.strip()
    if "```json" in cleaned:
        cleaned = _strip_fence(cleaned, "```json")
    elif "```" in cleaned:
        cleaned = _strip_fence(cleaned, "```")

    opens = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if not opens:
        return cleaned.strip()
    start = min(opens)
    end = max(cleaned.rfind("}"), cleaned.rfind("]"))

    if end > start:
        cleaned = cleaned[start:end + 1]
    return cleaned.strip()


def parse_json_response(raw: str, default=None):
    """
    Sanitize and parse a model response.

    Empty input yields ``default`` when one is given. A payload that does
    not parse raises StudioError(MALFORMED_RESPONSE).
    """
    candidate = sanitize_json_text(raw or "")
    if not candidate and default is not None:
        return default
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse model JSON: {e} :: {candidate[:200]}")
        raise StudioError(ErrorKind.MALFORMED_RESPONSE, f"Invalid JSON payload: {e}") from e
