"""Typed per-job translation configuration.

Job settings are stored as strings (config_entries). They are fetched once per
execution for an explicit, enumerated key set and parsed here into a frozen
TranslationJobOptions. Missing or malformed values fall back to the documented
defaults; nothing in this module raises on bad input.
"""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes", "on")


class SettingKeys:
    """Setting keys read by the translation job pipeline."""

    SERVICE_TYPE = "service_type"

    # Post-processing toggles
    FIX_OVERLAPPING_SUBTITLES = "fix_overlapping_subtitles"
    STRIP_SUBTITLE_FORMATTING = "strip_subtitle_formatting"
    ADD_TRANSLATOR_INFO = "add_translator_info"
    REMOVE_LANGUAGE_TAG = "remove_language_tag"
    USE_SUBTITLE_TAGGING = "use_subtitle_tagging"
    SUBTITLE_TAG = "subtitle_tag"

    # Context prompt
    AI_CONTEXT_PROMPT_ENABLED = "ai_context_prompt_enabled"
    AI_CONTEXT_PROMPT = "ai_context_prompt"
    AI_CONTEXT_BEFORE = "ai_context_before"
    AI_CONTEXT_AFTER = "ai_context_after"

    # Subtitle validation
    VALIDATE_SUBTITLES = "validate_subtitles"
    MAX_FILE_SIZE_BYTES = "max_file_size_bytes"
    MAX_SUBTITLE_LENGTH = "max_subtitle_length"
    MIN_SUBTITLE_LENGTH = "min_subtitle_length"
    MIN_DURATION_MS = "min_duration_ms"
    MAX_DURATION_SECS = "max_duration_secs"

    # Batching
    USE_BATCH_TRANSLATION = "use_batch_translation"
    MAX_BATCH_SIZE = "max_batch_size"

    # Failure policies
    VALIDATION_FAILURE_POLICY = "validation_failure_policy"
    LINE_FAILURE_POLICY = "line_failure_policy"

    @staticmethod
    def custom_parameters(backend_name: str) -> str:
        """Key holding the JSON custom parameters for a backend."""
        return f"{backend_name}_custom_parameters"

    @classmethod
    def job_keys(cls) -> list[str]:
        """All non-backend-specific keys the orchestrator requests."""
        return [
            value for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        ]


# Defaults returned by the settings service when no value is stored.
# Keys absent here (context window sizes, context prompt, custom parameters)
# are omitted from the snapshot when unset.
DEFAULT_SETTINGS: dict[str, str] = {
    SettingKeys.SERVICE_TYPE: "libretranslate",
    SettingKeys.FIX_OVERLAPPING_SUBTITLES: "false",
    SettingKeys.STRIP_SUBTITLE_FORMATTING: "false",
    SettingKeys.ADD_TRANSLATOR_INFO: "false",
    SettingKeys.REMOVE_LANGUAGE_TAG: "false",
    SettingKeys.USE_SUBTITLE_TAGGING: "false",
    SettingKeys.SUBTITLE_TAG: "",
    SettingKeys.AI_CONTEXT_PROMPT_ENABLED: "false",
    SettingKeys.VALIDATE_SUBTITLES: "false",
    SettingKeys.MAX_FILE_SIZE_BYTES: "2097152",
    SettingKeys.MAX_SUBTITLE_LENGTH: "500",
    SettingKeys.MIN_SUBTITLE_LENGTH: "1",
    SettingKeys.MIN_DURATION_MS: "500",
    SettingKeys.MAX_DURATION_SECS: "10",
    SettingKeys.USE_BATCH_TRANSLATION: "false",
    SettingKeys.MAX_BATCH_SIZE: "0",
    SettingKeys.VALIDATION_FAILURE_POLICY: "fail",
    SettingKeys.LINE_FAILURE_POLICY: "fail",
}


class ValidationFailurePolicy(str, Enum):
    """What to do with a translated line that fails validation."""

    FAIL = "fail"
    KEEP_SOURCE = "keep_source"


class LineFailurePolicy(str, Enum):
    """What to do when the backend call for a single unit fails."""

    FAIL = "fail"
    SKIP = "skip"


def parse_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in _TRUE_VALUES


def parse_int(value, default: int = 0, minimum: int | None = None) -> int:
    """Parse an integer setting, falling back to default when malformed."""
    if value is None or str(value).strip() == "":
        return default
    try:
        result = int(str(value).strip())
    except (ValueError, TypeError):
        logger.debug("Malformed integer setting %r, using default %d", value, default)
        return default
    if minimum is not None and result < minimum:
        return minimum
    return result


def _parse_enum(enum_cls, value, default):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning("Unknown %s %r, using %s", enum_cls.__name__, value, default.value)
        return default


@dataclass(frozen=True)
class SubtitleValidationOptions:
    """Thresholds applied by subtitle_validator.validate_subtitle."""

    max_file_size_bytes: int = 2 * 1024 * 1024
    max_subtitle_length: int = 500
    min_subtitle_length: int = 1
    min_duration_ms: int = 500
    max_duration_secs: int = 10


@dataclass(frozen=True)
class TranslationJobOptions:
    """Strongly typed view of one settings snapshot."""

    service_type: str = DEFAULT_SETTINGS[SettingKeys.SERVICE_TYPE]

    fix_overlapping_subtitles: bool = False
    strip_subtitle_formatting: bool = False
    add_translator_info: bool = False
    remove_language_tag: bool = False
    use_subtitle_tagging: bool = False
    subtitle_tag: str = ""

    context_prompt_enabled: bool = False
    context_prompt: str = ""
    context_before: int = 0
    context_after: int = 0

    validate_subtitles: bool = False
    validation: SubtitleValidationOptions = SubtitleValidationOptions()

    use_batch_translation: bool = False
    max_batch_size: int = 0

    validation_failure_policy: ValidationFailurePolicy = ValidationFailurePolicy.FAIL
    line_failure_policy: LineFailurePolicy = LineFailurePolicy.FAIL

    custom_parameters_json: str = ""

    @property
    def batch_enabled(self) -> bool:
        return self.use_batch_translation and self.max_batch_size > 1

    @property
    def tagging_enabled(self) -> bool:
        return self.use_subtitle_tagging and bool(self.subtitle_tag)

    @classmethod
    def from_settings(cls, settings: dict) -> "TranslationJobOptions":
        """Parse a settings snapshot. Never raises on missing/malformed keys."""
        get = settings.get
        # Backends register under lowercase names
        service_type = (get(SettingKeys.SERVICE_TYPE) or "").strip().lower()

        validation = SubtitleValidationOptions(
            max_file_size_bytes=parse_int(get(SettingKeys.MAX_FILE_SIZE_BYTES), 2 * 1024 * 1024, minimum=0),
            max_subtitle_length=parse_int(get(SettingKeys.MAX_SUBTITLE_LENGTH), 500, minimum=0),
            min_subtitle_length=parse_int(get(SettingKeys.MIN_SUBTITLE_LENGTH), 1, minimum=0),
            min_duration_ms=parse_int(get(SettingKeys.MIN_DURATION_MS), 500, minimum=0),
            max_duration_secs=parse_int(get(SettingKeys.MAX_DURATION_SECS), 10, minimum=0),
        )

        return cls(
            service_type=service_type,
            fix_overlapping_subtitles=parse_bool(get(SettingKeys.FIX_OVERLAPPING_SUBTITLES)),
            strip_subtitle_formatting=parse_bool(get(SettingKeys.STRIP_SUBTITLE_FORMATTING)),
            add_translator_info=parse_bool(get(SettingKeys.ADD_TRANSLATOR_INFO)),
            remove_language_tag=parse_bool(get(SettingKeys.REMOVE_LANGUAGE_TAG)),
            use_subtitle_tagging=parse_bool(get(SettingKeys.USE_SUBTITLE_TAGGING)),
            subtitle_tag=get(SettingKeys.SUBTITLE_TAG) or "",
            context_prompt_enabled=parse_bool(get(SettingKeys.AI_CONTEXT_PROMPT_ENABLED)),
            context_prompt=get(SettingKeys.AI_CONTEXT_PROMPT) or "",
            context_before=parse_int(get(SettingKeys.AI_CONTEXT_BEFORE), 0, minimum=0),
            context_after=parse_int(get(SettingKeys.AI_CONTEXT_AFTER), 0, minimum=0),
            validate_subtitles=parse_bool(get(SettingKeys.VALIDATE_SUBTITLES)),
            validation=validation,
            use_batch_translation=parse_bool(get(SettingKeys.USE_BATCH_TRANSLATION)),
            max_batch_size=parse_int(get(SettingKeys.MAX_BATCH_SIZE), 0, minimum=0),
            validation_failure_policy=_parse_enum(
                ValidationFailurePolicy,
                get(SettingKeys.VALIDATION_FAILURE_POLICY, "fail"),
                ValidationFailurePolicy.FAIL,
            ),
            line_failure_policy=_parse_enum(
                LineFailurePolicy,
                get(SettingKeys.LINE_FAILURE_POLICY, "fail"),
                LineFailurePolicy.FAIL,
            ),
            custom_parameters_json=(
                get(SettingKeys.custom_parameters(service_type), "") if service_type else ""
            ),
        )
