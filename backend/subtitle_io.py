"""Subtitle file reading/writing on top of pysubs2.

The pipeline works on a flat, ordered list of SubtitleItem objects. Positions
are 1-based and strictly increasing; the text of an event is split on the ASS
hard line break (\\N) into one entry per displayed line.
"""

import os
import re
import logging
from dataclasses import dataclass, field

import pysubs2

from error_handler import SubtitleIOError

logger = logging.getLogger(__name__)

HARD_BREAK = "\\N"

_FORMAT_BY_EXT = {
    ".srt": "srt",
    ".ass": "ass",
    ".ssa": "ssa",
    ".vtt": "vtt",
}


@dataclass
class SubtitleItem:
    """One subtitle entry as consumed by the translation pipeline."""

    position: int
    lines: list[str] = field(default_factory=list)
    start_ms: int | None = None
    end_ms: int | None = None

    @property
    def text(self) -> str:
        """Lines joined with newlines (the unit sent to a backend)."""
        return "\n".join(self.lines)

    @property
    def duration_ms(self) -> int | None:
        if self.start_ms is None or self.end_ms is None:
            return None
        return self.end_ms - self.start_ms


def read_subtitles(path: str) -> list[SubtitleItem]:
    """Load a subtitle file into an ordered list of SubtitleItem.

    Comment events and events without text are skipped; positions are
    assigned after filtering so they stay contiguous.

    Raises:
        SubtitleIOError: If the file is missing or cannot be parsed.
    """
    try:
        subs = pysubs2.load(path, encoding="utf-8-sig")
    except UnicodeDecodeError:
        # Many legacy SRT files are latin-1; retry once before giving up
        try:
            subs = pysubs2.load(path, encoding="latin-1")
        except Exception as e:
            raise SubtitleIOError(f"Cannot read subtitle file {path}: {e}") from e
    except Exception as e:
        raise SubtitleIOError(f"Cannot read subtitle file {path}: {e}") from e

    items = []
    for event in subs.events:
        if event.is_comment or not event.text.strip():
            continue
        items.append(SubtitleItem(
            position=len(items) + 1,
            lines=event.text.split(HARD_BREAK),
            start_ms=event.start,
            end_ms=event.end,
        ))

    logger.info("Loaded %d subtitle items from %s", len(items), os.path.basename(path))
    return items


def write_subtitles(path: str, items: list[SubtitleItem]) -> None:
    """Serialise items to path in the format implied by its extension.

    Raises:
        SubtitleIOError: If the destination cannot be written.
    """
    subs = pysubs2.SSAFile()
    for item in items:
        subs.append(pysubs2.SSAEvent(
            start=item.start_ms or 0,
            end=item.end_ms or 0,
            text=HARD_BREAK.join(line.replace("\n", HARD_BREAK) for line in item.lines),
        ))

    fmt = _FORMAT_BY_EXT.get(os.path.splitext(path)[1].lower(), "srt")
    try:
        subs.save(path, encoding="utf-8", format_=fmt)
    except Exception as e:
        raise SubtitleIOError(f"Cannot write subtitle file {path}: {e}") from e

    logger.info("Saved %d subtitle items to %s", len(items), path)


def create_file_path(source_path: str, source_language: str, target_language: str) -> str:
    """Build the sibling output path <basename>.<target>.<ext>.

    A trailing source-language tag on the basename is replaced instead of
    stacked: /tv/show.en.srt -> /tv/show.es.srt, /tv/show.srt -> /tv/show.es.srt.
    """
    base, ext = os.path.splitext(source_path)
    if source_language:
        base = re.sub(
            rf"\.{re.escape(source_language)}$", "", base, flags=re.IGNORECASE
        )
    return f"{base}.{target_language}{ext}"
