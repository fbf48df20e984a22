"""Centralized exception hierarchy for the translation pipeline.

Every failure that reaches the job orchestrator is expressed as a
LinguarrError subtype carrying a machine-readable code, optional debugging
context (the pipeline stage, the backend name, ...) and a troubleshooting hint.
The orchestrator turns these into a single terminal status message.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


# ─── Exception Hierarchy ─────────────────────────────────────────────────────


class LinguarrError(Exception):
    """Base exception for all Linguarr application errors.

    Attributes:
        code: Machine-readable error code (e.g. "TRANS_001")
        context: Additional context data for debugging
        troubleshooting: Human-readable hint for resolving the issue
    """

    code: str = "LINGUARR_000"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict] = None,
        troubleshooting: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.context = context or {}
        self.troubleshooting = troubleshooting

    @property
    def stage(self) -> str:
        """Pipeline stage the error originated in ("" when unknown)."""
        return self.context.get("stage", "")


class ConfigurationError(LinguarrError):
    """Configuration validation errors."""

    code = "CFG_001"


class UnknownBackendError(ConfigurationError):
    """The configured service type has no registered backend."""

    code = "CFG_002"

    def __init__(self, name: str = "", **kwargs: object) -> None:
        super().__init__(
            f"Unknown translation service '{name}'" if name else "No translation service configured",
            troubleshooting="Check the service_type setting against the registered backends.",
            **kwargs,  # type: ignore[arg-type]
        )
        self.backend_name = name


class TranslationError(LinguarrError):
    """Translation pipeline errors."""

    code = "TRANS_001"


class BackendError(TranslationError):
    """A backend call failed after the backend's own retry budget."""

    code = "TRANS_002"


class TranslationCancelledError(TranslationError):
    """Execution was cancelled cooperatively."""

    code = "TRANS_003"

    def __init__(self, message: str = "Translation cancelled", **kwargs: object) -> None:
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class SubtitleIOError(TranslationError):
    """Source subtitle unreadable or destination unwritable."""

    code = "IO_001"

    def __init__(self, message: str, **kwargs: object) -> None:
        super().__init__(
            message,
            troubleshooting="Check that the path exists and is readable/writable by the worker.",
            **kwargs,  # type: ignore[arg-type]
        )


class SubtitleValidationError(TranslationError):
    """Subtitle content failed the configured validation policy."""

    code = "VAL_001"


# ─── Structured Error Payloads ───────────────────────────────────────────────


def build_error_payload(error: LinguarrError, request_id: Optional[int] = None) -> dict:
    """Build a structured dict describing a LinguarrError (for events/logs)."""
    payload: dict = {
        "error": str(error),
        "code": error.code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if request_id is not None:
        payload["request_id"] = request_id
    if error.context:
        payload["context"] = error.context
    if error.troubleshooting:
        payload["troubleshooting"] = error.troubleshooting
    return payload


def describe_failure(error: BaseException) -> str:
    """Return the human-readable terminal message for a failed execution.

    Known errors render as "<stage>: <cause>"; anything else is reported with
    its exception type so the stored message is never empty.
    """
    if isinstance(error, LinguarrError):
        message = str(error) or error.__class__.__name__
        if error.stage:
            return f"{error.stage}: {message}"
        return message
    message = str(error)
    if message:
        return f"{error.__class__.__name__}: {message}"
    return error.__class__.__name__
