"""Post-processing passes applied to translated subtitle items.

apply_post_processing() runs the passes in a fixed order, each gated by its
own option: overlap fix, strip formatting, translator info, language-tag
removal, subtitle tagging. Every pass returns new SubtitleItem objects and
leaves its input untouched.
"""

import re
import logging
from dataclasses import replace

from job_config import TranslationJobOptions
from subtitle_io import SubtitleItem

logger = logging.getLogger(__name__)

# ASS override blocks: {\an8}, {\i1}, {\pos(10,20)}
_ASS_TAG_RE = re.compile(r"\{[^}]*\}")
# HTML-like tags used in SRT/VTT: <i>, </i>, <font color="...">
_HTML_TAG_RE = re.compile(r"</?[a-zA-Z][^>]*>")

TRANSLATOR_INFO_DURATION_MS = 3000
_MIN_LEAD_MS = 1000


def fix_overlapping(items: list[SubtitleItem]) -> list[SubtitleItem]:
    """Trim items that run into the next one so they end 1ms before it."""
    fixed = []
    for i, item in enumerate(items):
        nxt = items[i + 1] if i + 1 < len(items) else None
        if (
            nxt is not None
            and item.end_ms is not None
            and nxt.start_ms is not None
            and item.end_ms > nxt.start_ms
        ):
            new_end = max(nxt.start_ms - 1, item.start_ms or 0)
            item = replace(item, end_ms=new_end)
        fixed.append(item)
    return fixed


def strip_formatting(text: str) -> str:
    """Remove ASS override tags and HTML-like markup from one line."""
    result = _ASS_TAG_RE.sub("", text)
    result = _HTML_TAG_RE.sub("", result)
    return re.sub(r"\s{2,}", " ", result).strip()


def add_translator_info(
    items: list[SubtitleItem], backend_name: str, model_name: str
) -> tuple[list[SubtitleItem], int]:
    """Insert a credit item and renumber positions.

    The credit goes before the first item when there is at least one second
    of lead time, otherwise after the last item.

    Returns:
        (renumbered items, position of the credit item)
    """
    label = f"Translated with {backend_name}"
    if model_name:
        label += f" ({model_name})"

    first_start = items[0].start_ms if items else None
    if first_start is None or first_start >= _MIN_LEAD_MS:
        end = min(TRANSLATOR_INFO_DURATION_MS, first_start) if first_start else TRANSLATOR_INFO_DURATION_MS
        credit = SubtitleItem(position=0, lines=[label], start_ms=0, end_ms=end)
        combined = [credit] + list(items)
        credit_position = 1
    else:
        last_end = max((i.end_ms or 0) for i in items)
        credit = SubtitleItem(
            position=0,
            lines=[label],
            start_ms=last_end + 1,
            end_ms=last_end + 1 + TRANSLATOR_INFO_DURATION_MS,
        )
        combined = list(items) + [credit]
        credit_position = len(combined)

    renumbered = [replace(item, position=n) for n, item in enumerate(combined, 1)]
    return renumbered, credit_position


def remove_language_tag(text: str, language_codes: list[str]) -> str:
    """Strip a leading language marker such as "[ES] ", "(es) " or "es: "."""
    codes = "|".join(re.escape(c) for c in language_codes if c)
    if not codes:
        return text
    pattern = re.compile(
        rf"^\s*(?:\[(?:{codes})\]|\((?:{codes})\)|(?:{codes}):)\s*",
        re.IGNORECASE,
    )
    return pattern.sub("", text, count=1)


def tag_lines(lines: list[str], tag: str) -> list[str]:
    """Prefix the first line of an item with the subtitle tag."""
    if not lines or not tag:
        return list(lines)
    return [f"{tag} {lines[0]}"] + list(lines[1:])


def apply_post_processing(
    items: list[SubtitleItem],
    options: TranslationJobOptions,
    *,
    backend_name: str,
    model_name: str,
    source_language: str,
    target_language: str,
) -> tuple[list[SubtitleItem], int | None]:
    """Run all enabled passes in their fixed order.

    Returns:
        (processed items, position of the translator credit item or None)
    """
    result = list(items)

    if options.fix_overlapping_subtitles:
        result = fix_overlapping(result)

    if options.strip_subtitle_formatting:
        result = [
            replace(item, lines=[strip_formatting(line) for line in item.lines])
            for item in result
        ]

    credit_position = None
    if options.add_translator_info:
        result, credit_position = add_translator_info(result, backend_name, model_name)

    if options.remove_language_tag:
        codes = [target_language, source_language]
        result = [
            item if item.position == credit_position
            else replace(item, lines=[remove_language_tag(line, codes) for line in item.lines])
            for item in result
        ]

    if options.tagging_enabled:
        result = [
            item if item.position == credit_position
            else replace(item, lines=tag_lines(item.lines, options.subtitle_tag))
            for item in result
        ]

    return result, credit_position
