"""Subtitle validation predicates.

validate_subtitle() is a stateless check of one candidate line against the
configured thresholds. It only answers valid/invalid; deciding whether an
invalid line fails the request is the job orchestrator's responsibility.
"""

import os
import logging

from job_config import SubtitleValidationOptions
from subtitle_io import HARD_BREAK, SubtitleItem

logger = logging.getLogger(__name__)


def validate_subtitle(item: SubtitleItem, options: SubtitleValidationOptions) -> bool:
    """Check a translated item against size, length and duration limits.

    Args:
        item: Candidate item (text plus optional timing)
        options: Validation thresholds

    Returns:
        True if every applicable check passes
    """
    serialized = HARD_BREAK.join(item.lines)

    size = len(serialized.encode("utf-8"))
    if size > options.max_file_size_bytes:
        logger.debug("Item %d: %d bytes exceeds %d", item.position, size, options.max_file_size_bytes)
        return False

    # Line breaks do not count towards the displayed length
    length = len("".join(item.lines).strip())
    if length < options.min_subtitle_length or length > options.max_subtitle_length:
        logger.debug(
            "Item %d: length %d outside [%d, %d]",
            item.position, length, options.min_subtitle_length, options.max_subtitle_length,
        )
        return False

    duration = item.duration_ms
    if duration is not None:
        if duration < options.min_duration_ms or duration > options.max_duration_secs * 1000:
            logger.debug("Item %d: duration %dms out of range", item.position, duration)
            return False

    return True


def validate_file_size(path: str, options: SubtitleValidationOptions) -> bool:
    """Check the source file size against max_file_size_bytes."""
    try:
        size = os.path.getsize(path)
    except OSError:
        return False
    return size <= options.max_file_size_bytes
