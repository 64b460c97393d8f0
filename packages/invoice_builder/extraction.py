"""AI collaborators: description polish, work-notes analysis, PDF extraction.

All three call the OpenAI Responses API through the ``openai`` SDK. Their
outputs are *candidate* records only; callers pass them through
:func:`invoice_builder.normalizers.normalize_record` before they become line
items.

Failure contract
----------------
- :func:`polish_description` is best-effort and returns the original text on
  any failure.
- :func:`analyze_work_notes` and :func:`extract_items_from_pdf` raise
  :class:`ExtractionError` (original error chained) when the call fails or the
  output cannot be decoded. PDF extraction retries transient failures (HTTP
  429/5xx, connection errors) with capped exponential backoff first.

No client is created and no environment is read at import time.
"""

from __future__ import annotations

import base64
import json
import os
import re
import time
from collections.abc import Callable, Mapping
from typing import Any

from openai import APIConnectionError, OpenAI
from pydantic import ValidationError

from . import prompting
from .logging_setup import get_logger, log_latency
from .models import ExtractedItem
from .retry import DEFAULT_BASE_DELAY_SEC, DEFAULT_MAX_ATTEMPTS, with_backoff

_DEFAULT_MODEL: str = "gpt-5"
_MODEL_ENV = "INVOICE_BUILDER_MODEL"

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$")

_logger = get_logger("invoice_builder.extraction")


class ExtractionError(RuntimeError):
    """An AI collaborator call failed terminally."""


# ---- Internal helpers --------------------------------------------------------


def _model() -> str:
    return (os.getenv(_MODEL_ENV) or "").strip() or _DEFAULT_MODEL


def _create_client() -> OpenAI:
    return OpenAI()


def _response_text(resp: Any) -> str:
    """Locate the text output of a Responses SDK result.

    Prefers ``resp.output_text`` and falls back to
    ``resp.output[0].content[0].text``. Raises ``ValueError`` when neither is
    present.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    # Some SDK versions wrap the string in an object with ``value``.
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except (AttributeError, IndexError, TypeError):
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


def _decode_json(text: str) -> Any:
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError("Model output was not valid JSON") from e


def _coerce_items(decoded: Any) -> list[dict[str, Any]]:
    """Pull candidate records out of ``{"items": [...]}`` or a bare list.

    Each element is validated as :class:`ExtractedItem`; elements that fail
    validation are passed on as raw mappings (the normalizer copes), and
    non-mapping elements are dropped.
    """

    if isinstance(decoded, Mapping):
        raw_items = decoded.get("items")
    else:
        raw_items = decoded
    if not isinstance(raw_items, list):
        raise ValueError("Model output is missing an 'items' array")

    records: list[dict[str, Any]] = []
    for pos, raw in enumerate(raw_items):
        if not isinstance(raw, Mapping):
            _logger.warning("extract:drop_non_object pos=%d type=%s", pos, type(raw).__name__)
            continue
        try:
            records.append(ExtractedItem.model_validate(dict(raw)).to_record())
        except ValidationError:
            records.append(dict(raw))
    return records


def _is_retryable(exc: BaseException) -> bool:
    """True for HTTP 429, HTTP 5xx and connection/timeout errors."""

    if isinstance(exc, APIConnectionError):
        return True
    sc = getattr(exc, "status_code", None)
    return isinstance(sc, int) and (sc == 429 or 500 <= sc < 600)


# ---- Public collaborators ----------------------------------------------------


def polish_description(text: str) -> str:
    """Return a more professional wording of ``text``, or ``text`` itself on failure."""

    if not text or not text.strip():
        return text
    try:
        with log_latency(_logger, "polish:done"):
            client = _create_client()
            resp = client.responses.create(
                model=_model(),
                instructions=prompting.build_polish_instructions(),
                input=prompting.build_polish_input(text),
            )
            polished = _response_text(resp).strip().strip('"').strip()
    except Exception as e:  # noqa: BLE001 - best-effort by contract
        _logger.warning("polish:failed error=%s", e.__class__.__name__)
        return text
    return polished or text


def analyze_work_notes(notes: str) -> list[dict[str, Any]]:
    """Break free-form work notes into candidate line-item records.

    Returns records with any subset of ``category, description, date, hours,
    rate``. Blank notes return an empty list without calling the model.
    """

    if not notes or not notes.strip():
        return []
    try:
        with log_latency(_logger, "notes:done") as fields:
            client = _create_client()
            resp = client.responses.create(
                model=_model(),
                instructions=prompting.build_notes_instructions(),
                input=prompting.build_notes_input(notes),
                text={"format": prompting.build_notes_response_format()},
            )
            records = _coerce_items(_decode_json(_response_text(resp)))
            fields["num_items"] = len(records)
    except Exception as e:
        _logger.error("notes:failed error=%s", e.__class__.__name__)
        raise ExtractionError(f"work notes analysis failed: {e}") from e
    return records


def extract_items_from_pdf(
    data: bytes,
    *,
    filename: str = "document.pdf",
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY_SEC,
    sleep: Callable[[float], None] = time.sleep,
) -> list[dict[str, Any]]:
    """Extract candidate line-item records from a PDF document.

    Records may carry ``category, date, description, hours, rate, amount``.
    Transient API failures are retried with backoff; decode/validation errors
    are terminal.
    """

    if not data:
        raise ExtractionError("PDF extraction failed: empty document")
    file_data = "data:application/pdf;base64," + base64.b64encode(data).decode("ascii")
    request_input = [
        {
            "role": "user",
            "content": [
                {"type": "input_file", "filename": filename, "file_data": file_data},
                {"type": "input_text", "text": prompting.build_pdf_instructions()},
            ],
        }
    ]

    def _call(client: OpenAI) -> list[dict[str, Any]]:
        resp = client.responses.create(
            model=_model(),
            input=request_input,
            text={"format": prompting.build_pdf_response_format()},
        )
        return _coerce_items(_decode_json(_response_text(resp)))

    try:
        with log_latency(_logger, "pdf:done", file=filename) as fields:
            client = _create_client()
            records = with_backoff(
                lambda: _call(client),
                max_attempts=max_attempts,
                base_delay=base_delay,
                is_retryable=_is_retryable,
                sleep=sleep,
                label="pdf",
            )
            fields["num_items"] = len(records)
    except Exception as e:
        _logger.error("pdf:failed_terminal file=%s error=%s", filename, e.__class__.__name__)
        raise ExtractionError(f"PDF extraction failed for {filename}: {e}") from e
    return records


__all__ = [
    "ExtractionError",
    "analyze_work_notes",
    "extract_items_from_pdf",
    "polish_description",
]
