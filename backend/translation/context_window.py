"""Context window construction for context-aware prompts.

Pure functions over an ordered subtitle sequence. Windows are truncated at the
sequence boundaries (no wraparound, no error) and negative counts are treated
as zero.
"""

from subtitle_io import SubtitleItem


def build_context(
    items: list[SubtitleItem],
    index: int,
    before_count: int,
    after_count: int,
) -> tuple[list[str], list[str]]:
    """Collect up to before_count/after_count lines around items[index].

    Args:
        items: Ordered subtitle sequence
        index: 0-based index of the item being translated
        before_count: Lines wanted before the item
        after_count: Lines wanted after the item

    Returns:
        (before, after) lists of item texts in sequence order
    """
    return build_range_context(items, index, index, before_count, after_count)


def build_range_context(
    items: list[SubtitleItem],
    first: int,
    last: int,
    before_count: int,
    after_count: int,
) -> tuple[list[str], list[str]]:
    """Like build_context, for the contiguous range items[first..last] (a batch)."""
    before_count = max(0, before_count or 0)
    after_count = max(0, after_count or 0)

    start = max(0, first - before_count)
    before = [item.text for item in items[start:max(0, first)]]

    end = min(len(items), last + 1 + after_count)
    after = [item.text for item in items[last + 1:end]]

    return before, after
