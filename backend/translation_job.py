"""Translation job orchestrator.

Drives one translation request from pending/in_progress to a terminal
status. The pipeline per execution:

    settings -> backend -> read -> translate (context, prompt, custom
    parameters, progress per unit) -> post-process -> validate -> write
    -> complete + statistics

Every failure is converted into exactly one terminal "failed" write whose
message names the stage it came from ("read: Cannot read subtitle file ...").
execute() never raises.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Optional

from cancellation import CancellationToken
from db.models.core import TranslationStatus
from error_handler import (
    BackendError,
    LinguarrError,
    SubtitleIOError,
    SubtitleValidationError,
    TranslationCancelledError,
    build_error_payload,
    describe_failure,
)
from job_config import (
    LineFailurePolicy,
    SettingKeys,
    TranslationJobOptions,
    ValidationFailurePolicy,
)
from subtitle_io import SubtitleItem, create_file_path, read_subtitles, write_subtitles
from subtitle_postprocess import apply_post_processing
from subtitle_validator import validate_file_size, validate_subtitle
from translation.base import BatchSubtitleItem, TranslationBackend
from translation.context_window import build_context, build_range_context
from translation.custom_parameters import resolve_custom_parameters
from translation.prompt_engine import apply_context_if_enabled

logger = logging.getLogger(__name__)

STAGE_SETTINGS = "settings"
STAGE_BACKEND = "backend"
STAGE_READ = "read"
STAGE_TRANSLATE = "translate"
STAGE_POSTPROCESS = "post-process"
STAGE_VALIDATE = "validate"
STAGE_WRITE = "write"
STAGE_COMPLETE = "complete"


@contextmanager
def _stage(name: str, error_cls: type[LinguarrError] = LinguarrError):
    """Tag errors raised inside the block with the pipeline stage.

    Known errors keep their type; unexpected exceptions are wrapped in
    error_cls. Cancellation passes through untouched.
    """
    try:
        yield
    except TranslationCancelledError:
        raise
    except LinguarrError as e:
        e.context.setdefault("stage", name)
        raise
    except Exception as e:
        raise error_cls(str(e) or e.__class__.__name__, context={"stage": name}) from e


def _split_lines(text: str) -> list[str]:
    return [line.rstrip() for line in (text or "").split("\n")]


class TranslationJob:
    """Runs translation requests against injected collaborators.

    Args:
        settings_service: get_settings(keys) -> {key: value}
        request_service: update_translation_request(request, status, message=None,
            translated_subtitle=None) -> updated request
        progress_service: report_progress(request_id, processed, total) and
            report_status(request)
        statistics_service: record_translation(request_id, line_count, backend_name, model_name)
        backend_factory: create_translation_service(name) and custom_parameter_keys()
        reader / writer: subtitle file I/O, defaulting to pysubs2-backed subtitle_io
    """

    def __init__(
        self,
        settings_service,
        request_service,
        progress_service,
        statistics_service,
        backend_factory,
        reader: Callable[[str], list[SubtitleItem]] = read_subtitles,
        writer: Callable[[str, list[SubtitleItem]], None] = write_subtitles,
    ):
        self._settings = settings_service
        self._requests = request_service
        self._progress = progress_service
        self._statistics = statistics_service
        self._factory = backend_factory
        self._read = reader
        self._write = writer

    # ---- public API -------------------------------------------------------------

    def execute(self, request: dict, cancellation_token: Optional[CancellationToken] = None) -> dict:
        """Translate one request and return it in its terminal state.

        A request that is already completed is returned unchanged and its
        output file is left alone.
        """
        token = cancellation_token or CancellationToken()
        request_id = request["id"]

        if request["status"] == TranslationStatus.COMPLETED.value:
            logger.info("Translation request %s already completed, nothing to do", request_id)
            return request

        started = time.time()
        try:
            if request["status"] != TranslationStatus.IN_PROGRESS.value:
                request = self._set_status(request, TranslationStatus.IN_PROGRESS)
            completed = self._run(request, token)
        except TranslationCancelledError as e:
            logger.info("Translation request %s cancelled", request_id)
            return self._fail(request, describe_failure(e))
        except LinguarrError as e:
            logger.error("Translation request %s failed at %s: %s",
                         request_id, e.stage or "unknown stage", e)
            logger.debug("Failure details: %s", build_error_payload(e, request_id))
            return self._fail(request, describe_failure(e))
        except Exception as e:
            logger.exception("Translation request %s failed unexpectedly", request_id)
            return self._fail(request, describe_failure(e))

        logger.info("Translation request %s completed in %.1fs", request_id, time.time() - started)
        return completed

    # ---- pipeline ---------------------------------------------------------------

    def _run(self, request: dict, token: CancellationToken) -> dict:
        request_id = request["id"]
        source_language = request["source_language"]
        target_language = request["target_language"]
        source_path = request["subtitle_to_translate"]

        token.raise_if_cancelled()
        with _stage(STAGE_SETTINGS):
            options = self._resolve_options()

        with _stage(STAGE_BACKEND):
            backend = self._factory.create_translation_service(options.service_type)
        logger.info("Request %s: translating %s (%s -> %s) with %s",
                    request_id, source_path, source_language, target_language, backend.name)

        token.raise_if_cancelled()
        with _stage(STAGE_READ, SubtitleIOError):
            items = self._read(source_path)
            if options.validate_subtitles and not validate_file_size(source_path, options.validation):
                raise SubtitleValidationError(
                    f"Source file exceeds {options.validation.max_file_size_bytes} bytes",
                    context={"stage": STAGE_VALIDATE},
                )

        custom_parameters = resolve_custom_parameters(options.custom_parameters_json)
        context_properties = {
            "title": request.get("title") or "",
            "mediaType": request.get("media_type") or "",
        }

        with _stage(STAGE_TRANSLATE, BackendError):
            translated = self._translate_items(
                request_id, items, backend, options, custom_parameters,
                context_properties, source_language, target_language, token,
            )

        with _stage(STAGE_POSTPROCESS):
            processed, credit_position = apply_post_processing(
                translated,
                options,
                backend_name=backend.name,
                model_name=backend.model_name,
                source_language=source_language,
                target_language=target_language,
            )

        if options.validate_subtitles:
            with _stage(STAGE_VALIDATE, SubtitleValidationError):
                processed = self._validate(items, processed, credit_position, options)

        token.raise_if_cancelled()
        output_path = create_file_path(source_path, source_language, target_language)
        with _stage(STAGE_WRITE, SubtitleIOError):
            self._write(output_path, processed)

        with _stage(STAGE_COMPLETE):
            completed = self._set_status(
                request, TranslationStatus.COMPLETED, translated_subtitle=output_path
            )

        try:
            self._statistics.record_translation(
                request_id, len(items), backend.name, backend.model_name
            )
        except Exception as e:
            logger.warning("Failed to record statistics for request %s: %s", request_id, e)

        return completed

    def _resolve_options(self) -> TranslationJobOptions:
        keys = SettingKeys.job_keys() + list(self._factory.custom_parameter_keys())
        snapshot = self._settings.get_settings(keys)
        options = TranslationJobOptions.from_settings(snapshot)
        logger.debug(
            "Job options: service=%s context=%s(%d/%d) batch=%s(%d) validate=%s",
            options.service_type, options.context_prompt_enabled, options.context_before,
            options.context_after, options.use_batch_translation, options.max_batch_size,
            options.validate_subtitles,
        )
        return options

    def _translate_items(
        self,
        request_id: int,
        items: list[SubtitleItem],
        backend: TranslationBackend,
        options: TranslationJobOptions,
        custom_parameters: list,
        context_properties: dict,
        source_language: str,
        target_language: str,
        token: CancellationToken,
    ) -> list[SubtitleItem]:
        """Translate items unit by unit, reporting progress after each unit."""
        use_batch = options.batch_enabled and backend.supports_batch
        if options.batch_enabled and not backend.supports_batch:
            logger.info("Backend %s does not support batch translation, translating line by line",
                        backend.name)

        unit_size = 1
        if use_batch:
            unit_size = options.max_batch_size
            if backend.max_batch_size:
                unit_size = min(unit_size, backend.max_batch_size)

        total = len(items)
        translations: dict[int, list[str]] = {}
        processed = 0

        for first in range(0, total, unit_size):
            token.raise_if_cancelled()
            last = min(first + unit_size, total) - 1
            if use_batch:
                results = self._translate_batch(
                    items, first, last, backend, options, custom_parameters,
                    source_language, target_language, token,
                )
            else:
                results = self._translate_line(
                    items, first, backend, options, custom_parameters,
                    context_properties, source_language, target_language, token,
                )
            translations.update(results)
            processed = last + 1
            self._report(self._progress.report_progress, request_id, processed, total)

        return [replace(item, lines=translations[item.position]) for item in items]

    def _translate_line(self, items, index, backend, options, custom_parameters,
                        context_properties, source_language, target_language, token):
        item = items[index]
        before = after = None
        text = item.text

        if options.context_prompt_enabled and backend.supports_context_prompt:
            before, after = build_context(items, index, options.context_before, options.context_after)
            text = apply_context_if_enabled(
                item.text,
                before,
                after,
                enabled=options.context_prompt_enabled,
                template=options.context_prompt,
                context_properties=context_properties,
                base_replacements={
                    "sourceLanguage": source_language,
                    "targetLanguage": target_language,
                },
            )

        try:
            result = backend.translate(
                text,
                source_language,
                target_language,
                context_before=before or None,
                context_after=after or None,
                custom_parameters=custom_parameters or None,
                cancellation_token=token,
            )
        except TranslationCancelledError:
            raise
        except Exception as e:
            return self._handle_unit_failure(options, [item], e)

        return {item.position: _split_lines(result)}

    def _translate_batch(self, items, first, last, backend, options, custom_parameters,
                         source_language, target_language, token):
        chunk = items[first:last + 1]
        before = after = None
        if options.context_prompt_enabled and backend.supports_context_prompt:
            before, after = build_range_context(
                items, first, last, options.context_before, options.context_after
            )

        try:
            results = backend.translate_batch(
                [BatchSubtitleItem(position=item.position, line=item.text) for item in chunk],
                source_language,
                target_language,
                context_before=before or None,
                context_after=after or None,
                custom_parameters=custom_parameters or None,
                cancellation_token=token,
            )
            missing = [item.position for item in chunk if item.position not in results]
            if missing:
                raise BackendError(f"Batch result is missing positions {missing}")
        except TranslationCancelledError:
            raise
        except Exception as e:
            return self._handle_unit_failure(options, chunk, e)

        return {item.position: _split_lines(results[item.position]) for item in chunk}

    def _handle_unit_failure(self, options, chunk: list[SubtitleItem], error: Exception):
        """Apply the line failure policy to a unit whose backend call raised."""
        first, last = chunk[0].position, chunk[-1].position
        label = str(first) if first == last else f"{first}-{last}"
        if options.line_failure_policy == LineFailurePolicy.SKIP:
            logger.warning("Keeping source text for item %s after backend failure: %s", label, error)
            return {item.position: list(item.lines) for item in chunk}
        if isinstance(error, LinguarrError):
            error.context.setdefault("item", label)
            raise error
        raise BackendError(
            f"{error.__class__.__name__}: {error}" if str(error) else error.__class__.__name__,
            context={"stage": STAGE_TRANSLATE, "item": label},
        ) from error

    def _validate(self, source_items, processed, credit_position, options):
        """Check translated items; the translator credit is never validated.

        Post-processing keeps one output item per source item (plus the
        optional credit), in order, so the two lists line up after the
        credit item is set aside.
        """
        translated = iter(source_items)
        result = []
        for item in processed:
            if item.position == credit_position:
                result.append(item)
                continue
            source = next(translated)
            if validate_subtitle(item, options.validation):
                result.append(item)
            elif options.validation_failure_policy == ValidationFailurePolicy.KEEP_SOURCE:
                logger.warning("Item %d failed validation, keeping source text", item.position)
                result.append(replace(item, lines=list(source.lines)))
            else:
                raise SubtitleValidationError(
                    f"Subtitle {item.position} failed validation",
                    context={"stage": STAGE_VALIDATE, "item": item.position},
                )
        return result

    # ---- status bookkeeping -----------------------------------------------------

    def _set_status(self, request: dict, status: TranslationStatus, **kwargs) -> dict:
        updated = self._requests.update_translation_request(request, status.value, **kwargs)
        if updated is None:
            updated = dict(request, status=status.value)
        self._report(self._progress.report_status, updated)
        return updated

    @staticmethod
    def _report(method, *args) -> None:
        """Call a progress collaborator method; its failures never affect the job."""
        try:
            method(*args)
        except Exception as e:
            logger.warning("Progress notification failed: %s", e)

    def _fail(self, request: dict, message: str) -> dict:
        """Write the single terminal failure. Never raises."""
        try:
            return self._set_status(request, TranslationStatus.FAILED, message=message)
        except Exception:
            logger.exception("Could not persist failure for request %s", request["id"])
            return dict(request, status=TranslationStatus.FAILED.value, error_message=message)
