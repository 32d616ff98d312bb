"""Conversion between UI message parts and flat ``parts`` rows.

Each part kind maps a handful of its fields onto prefixed columns of the
shared ``parts`` table. The field tables below are the only place that knows
which column belongs to which kind; both directions are driven by them.
"""

from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple

from app.exceptions.chat import DataIntegrityViolationError, UnsupportedPartTypeError
from app.schemas.chat import PART_MODELS, UIPart


class PartField(NamedTuple):
    """One UI field stored in one column."""

    attribute: str
    column: str
    required: bool


PART_FIELDS: dict[str, tuple[PartField, ...]] = {
    "text": (PartField("text", "text_text", True),),
    "reasoning": (
        PartField("text", "reasoning_text", True),
        PartField("provider_metadata", "provider_metadata", False),
    ),
    "file": (
        PartField("media_type", "file_media_type", True),
        PartField("filename", "file_filename", False),
        PartField("url", "file_url", True),
    ),
    "source-url": (
        PartField("source_id", "source_url_source_id", True),
        PartField("url", "source_url_url", True),
        PartField("title", "source_url_title", False),
        PartField("provider_metadata", "provider_metadata", False),
    ),
    "source-document": (
        PartField("source_id", "source_document_source_id", True),
        PartField("media_type", "source_document_media_type", True),
        PartField("title", "source_document_title", True),
        PartField("filename", "source_document_filename", False),
        PartField("provider_metadata", "provider_metadata", False),
    ),
    "step-start": (),
}

SUPPORTED_PART_TYPES = tuple(PART_FIELDS)


def _coerce_part(part: UIPart | Mapping[str, Any]) -> UIPart:
    """Return ``part`` as a validated UI part model.

    Raw mappings are validated against the model selected by their ``type``.
    """
    if isinstance(part, Mapping):
        part_type = part.get("type")
        model = PART_MODELS.get(part_type)
        if model is None:
            raise UnsupportedPartTypeError(part_type, SUPPORTED_PART_TYPES)
        return model.model_validate(part)

    part_type = getattr(part, "type", type(part).__name__)
    if part_type not in PART_FIELDS or not isinstance(part, PART_MODELS[part_type]):
        raise UnsupportedPartTypeError(part_type, SUPPORTED_PART_TYPES)
    return part


def parts_to_rows(parts: Sequence[UIPart | Mapping[str, Any]], message_id: str) -> list[dict[str, Any]]:
    """Map the ordered parts of one message to ``parts`` rows.

    Args:
        parts: UI parts in display order.
        message_id: Identifier of the owning message.

    Returns:
        One row per part, with ``order`` set to the part's position and only
        the columns of the part's kind populated.

    Raises:
        UnsupportedPartTypeError: A part has a kind that cannot be stored.
            Nothing is mapped in that case, so nothing is written either.
    """
    rows = []
    for order, raw_part in enumerate(parts):
        part = _coerce_part(raw_part)
        row = {"message_id": message_id, "order": order, "type": part.type}
        for field in PART_FIELDS[part.type]:
            row[field.column] = getattr(part, field.attribute)
        rows.append(row)
    return rows


def row_to_part(row: Any) -> UIPart:
    """Map a stored ``parts`` row (ORM object or mapping) back to a UI part.

    Only the columns of the row's kind are read.

    Raises:
        UnsupportedPartTypeError: The row's ``type`` is unknown.
        DataIntegrityViolationError: A column the kind requires is null.
    """
    read = row.get if isinstance(row, Mapping) else lambda column: getattr(row, column, None)

    part_type = read("type")
    fields = PART_FIELDS.get(part_type)
    if fields is None:
        raise UnsupportedPartTypeError(part_type, SUPPORTED_PART_TYPES)

    values = {}
    for field in fields:
        value = read(field.column)
        if value is None:
            if field.required:
                raise DataIntegrityViolationError(part_type, field.column, read("id"))
            continue
        values[field.attribute] = value

    return PART_MODELS[part_type](type=part_type, **values)


def rows_to_parts(rows: Sequence[Any]) -> list[UIPart]:
    """Map stored rows to UI parts, sorted by ``order``."""

    def read_order(row):
        return row["order"] if isinstance(row, Mapping) else row.order

    return [row_to_part(row) for row in sorted(rows, key=read_order)]
