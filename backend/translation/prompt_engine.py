"""Prompt template rendering.

Templates use literal {placeholder} tokens. Substitution is plain string
replacement applied once per key in mapping order, so a replacement value that
itself contains "{otherKey}" is substituted again when otherKey comes later.
Unknown placeholders are left verbatim.

Every call builds its own replacement mapping; nothing is stored on shared
objects, so concurrent jobs using the same backend instance stay isolated.
"""

import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 200


def render_template(template: str, replacements: dict[str, str]) -> str:
    """Substitute {key} tokens in template with values from replacements.

    Args:
        template: Template text
        replacements: Placeholder name -> replacement text

    Returns:
        Rendered text (template unchanged when no key matches)
    """
    if not template:
        return template

    result = template
    for key, value in replacements.items():
        result = result.replace("{" + key + "}", value if value is not None else "")
    return result


def format_context_lines(lines: Optional[list[str]]) -> str:
    """Number context lines as "[1] first\\n[2] second"."""
    if not lines:
        return ""
    return "\n".join(f"[{i}] {line}" for i, line in enumerate(lines, 1))


def apply_context_if_enabled(
    text: str,
    context_before: Optional[list[str]],
    context_after: Optional[list[str]],
    *,
    enabled: bool,
    template: str,
    context_properties: Optional[dict[str, str]] = None,
    base_replacements: Optional[dict[str, str]] = None,
) -> str:
    """Render the context prompt around text, or return text unchanged.

    Available placeholders: {contextBefore}, {contextAfter},
    {lineToTranslate}, {context.<key>} for each context property, {context}
    (one "key: value" per line) and {contextJson}, the last two only when
    context_properties is non-empty; plus anything in
    base_replacements (e.g. {sourceLanguage}).

    Args:
        text: Line (or numbered batch) to translate
        context_before: Preceding lines
        context_after: Following lines
        enabled: Context prompt feature flag
        template: Context prompt template
        context_properties: Named properties such as title or mediaType
        base_replacements: Backend-level replacements, copied not mutated

    Returns:
        Rendered prompt, or text itself when disabled or no template is set
    """
    if not enabled or not template:
        logger.debug(
            "Context prompt disabled or empty (enabled=%s, template=%s)",
            enabled, "SET" if template else "EMPTY",
        )
        return text

    replacements = dict(base_replacements or {})
    replacements["contextBefore"] = format_context_lines(context_before)
    replacements["lineToTranslate"] = text
    replacements["contextAfter"] = format_context_lines(context_after)

    # Without properties, {context} and {contextJson} stay verbatim
    if context_properties:
        for key, value in context_properties.items():
            replacements[f"context.{key}"] = value or ""
        replacements["context"] = "\n".join(f"{key}: {value}" for key, value in context_properties.items())
        try:
            replacements["contextJson"] = json.dumps(context_properties, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.debug("Failed to serialize context properties to JSON: %s", e)

    logger.debug(
        "Applying context prompt: %d before, %d after, properties=%s",
        len(context_before or []), len(context_after or []),
        ", ".join(context_properties) if context_properties else "none",
    )

    result = render_template(template, replacements)
    logger.debug("Rendered prompt preview: %s", result[:_PREVIEW_CHARS])
    return result
