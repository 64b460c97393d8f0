"""Prompt text and strict JSON schemas for the AI collaborators.

Three tasks share this module:

- description polish (plain text in, plain text out)
- work-notes analysis (text in, ``{"items": [...]}`` out)
- PDF line-item extraction (document in, ``{"items": [...]}`` out)

The classification vocabulary in the prompts mirrors the normalizer's expense
keywords so model output and local inference agree on what counts as an
expense.
"""

from __future__ import annotations

from openai.types.responses.response_format_text_json_schema_config_param import (
    ResponseFormatTextJSONSchemaConfigParam,
)

NOTES_BEGIN = "BEGIN_WORK_NOTES\n"
NOTES_END = "\nEND_WORK_NOTES"

_CLASSIFICATION_RULES = (
    "Classify every item as exactly one of:\n"
    "- 'service': labor, hours worked, consultation, installation, management time.\n"
    "- 'expense': materials, hardware, fuel, parking, travel, consumables, equipment "
    "hire, reimbursements, and purchases from Bunnings, Mitre 10, Placemakers, ITM or "
    "Carters (screws, timber, concrete, paint, etc.)."
)


def build_polish_instructions() -> str:
    return (
        "You rewrite invoice line item descriptions for a construction invoice. "
        "Make them professional, concise and clear. Return ONLY the rewritten text."
    )


def build_polish_input(text: str) -> str:
    return f'Input: "{text}"'


def build_notes_instructions() -> str:
    return (
        "You are an expert construction estimator. Break raw work notes down into "
        "invoice line items. " + _CLASSIFICATION_RULES + "\n"
        "For each item provide: category; a professional description; the date as "
        "YYYY-MM-DD when the notes give one (else null); hours worked for service or "
        "quantity for expense (usually 1); the hourly rate (65-85 for labor) or unit "
        "cost. Output JSON only, conforming to the schema."
    )


def build_notes_input(notes: str) -> str:
    """Embed the raw notes between fixed markers."""

    return "Raw notes:\n" + NOTES_BEGIN + notes + NOTES_END


def build_pdf_instructions() -> str:
    return (
        "Extract all invoice line items from the attached PDF (invoice or timesheet). "
        + _CLASSIFICATION_RULES
        + "\nFor each item provide: category; date as YYYY-MM-DD (or null); "
        "description; hours (hours for labor, 0 for expenses); rate; amount. "
        "Output JSON only, conforming to the schema."
    )


def _items_schema(name: str, *, with_amount: bool) -> ResponseFormatTextJSONSchemaConfigParam:
    properties: dict[str, object] = {
        "category": {"type": "string", "enum": ["service", "expense"]},
        "description": {"type": "string"},
        "date": {"type": ["string", "null"]},
        "hours": {"type": ["number", "null"]},
        "rate": {"type": ["number", "null"]},
    }
    if with_amount:
        properties["amount"] = {"type": ["number", "null"]}

    result: ResponseFormatTextJSONSchemaConfigParam = {
        "type": "json_schema",
        "name": name,
        "schema": {
            "type": "object",
            "properties": {
                "items": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": properties,
                        # Strict mode: every property is required (nullable instead).
                        "required": list(properties),
                        "additionalProperties": False,
                    },
                }
            },
            "required": ["items"],
            "additionalProperties": False,
        },
        "strict": True,
    }
    return result


def build_notes_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    return _items_schema("work_note_items", with_amount=False)


def build_pdf_response_format() -> ResponseFormatTextJSONSchemaConfigParam:
    return _items_schema("pdf_line_items", with_amount=True)


__all__ = [
    "NOTES_BEGIN",
    "NOTES_END",
    "build_notes_input",
    "build_notes_instructions",
    "build_notes_response_format",
    "build_pdf_instructions",
    "build_pdf_response_format",
    "build_polish_input",
    "build_polish_instructions",
]
