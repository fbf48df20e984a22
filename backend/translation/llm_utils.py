"""Shared LLM utilities for translation backends.

Prompt defaults plus numbering/parsing helpers used by LLM backends that
translate several subtitle lines in a single completion.
"""

import re
import logging

logger = logging.getLogger(__name__)

_NUMBER_PREFIX_RE = re.compile(r"^\d+[\.:]\s*")

DEFAULT_SYSTEM_PROMPT = (
    "You are a professional subtitle translator. Translate the user's text from "
    "{sourceLanguage} to {targetLanguage}. Keep the meaning, tone and line breaks. "
    "Return ONLY the translation, without notes, quotes or language labels."
)

DEFAULT_BATCH_INSTRUCTIONS = (
    "Translate each numbered subtitle line. Return exactly one line per input line, "
    "keeping the same numbers in the form \"<number>: <translation>\".\n\n"
)


def number_lines(lines: list[str]) -> str:
    """Render lines as "1: first\\n2: second" (newlines inside a line become spaces)."""
    return "\n".join(
        f"{i}: {line.replace(chr(10), ' ')}" for i, line in enumerate(lines, 1)
    )


def parse_llm_response(response_text: str, expected_count: int) -> list[str] | None:
    """Parse LLM response into individual lines.

    Handles numbered responses (e.g. "1: text") and plain lines.
    Attempts to merge split lines before giving up.

    Args:
        response_text: Raw LLM response text
        expected_count: Number of lines expected

    Returns:
        List of parsed lines, or None if count mismatch cannot be resolved
    """
    lines = response_text.strip().split("\n")
    lines = [l for l in lines if l.strip()]

    cleaned = [_NUMBER_PREFIX_RE.sub("", line) for line in lines]

    if len(cleaned) == expected_count:
        return cleaned

    # Too many lines: try merging consecutive non-numbered lines
    if len(cleaned) > expected_count:
        logger.warning(
            "Got %d lines, expected %d. Trying to merge excess lines.",
            len(cleaned), expected_count,
        )
        merged = []
        for i, line in enumerate(cleaned):
            original = lines[i]
            if _NUMBER_PREFIX_RE.match(original):
                merged.append(line)
            elif merged:
                merged[-1] = merged[-1] + " " + line
            else:
                merged.append(line)

        if len(merged) == expected_count:
            return merged

        logger.warning("Merge failed (%d lines), returning None for retry", len(merged))
        return None

    logger.warning(
        "Line count mismatch: got %d, expected %d", len(cleaned), expected_count,
    )
    return None


def strip_wrapping_quotes(text: str) -> str:
    """Remove one pair of quotes an LLM sometimes wraps its answer in."""
    stripped = text.strip()
    if (
        len(stripped) >= 2
        and stripped[0] == stripped[-1]
        and stripped[0] in "\"'`"
        and stripped[0] not in stripped[1:-1]
    ):
        return stripped[1:-1]
    return stripped
