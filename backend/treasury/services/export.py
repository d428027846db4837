"""Export envelope assembly.

Rendering to CSV/PDF/Excel happens downstream; this module validates the
request and packages the selected analytics sections with the metadata a
renderer needs.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from treasury.core.exceptions import BadRequestError
from treasury.schemas.analytics import ExportMetadata, ExportResponse

# format -> (media type, file extension)
EXPORT_FORMATS: dict[str, tuple[str, str]] = {
    "csv": ("text/csv", "csv"),
    "pdf": ("application/pdf", "pdf"),
    "excel": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
    "json": ("application/json", "json"),
}
EXPORT_TEMPLATES = ("executive_summary", "detailed_report", "board_presentation", "regulatory")
EXPORT_SECTIONS = (
    "overview",
    "cashflow",
    "categories",
    "liquidity",
    "patterns",
    "trends",
    "forecasting",
    "benchmarking",
)


def validate_export_request(
    export_format: str,
    template: str | None = None,
    sections: Sequence[str] | None = None,
) -> tuple[str, list[str]]:
    """Normalise the format and section list, rejecting unknown values."""
    fmt = (export_format or "").lower()
    if fmt not in EXPORT_FORMATS:
        raise BadRequestError(f"Invalid export format. Valid options: {', '.join(EXPORT_FORMATS)}")
    if template is not None and template not in EXPORT_TEMPLATES:
        raise BadRequestError(f"Invalid template. Valid options: {', '.join(EXPORT_TEMPLATES)}")

    if not sections:
        return fmt, list(EXPORT_SECTIONS)
    unknown = [s for s in sections if s not in EXPORT_SECTIONS]
    if unknown:
        raise BadRequestError(f"Invalid export sections: {', '.join(unknown)}")
    # Keep the canonical order, drop duplicates
    return fmt, [s for s in EXPORT_SECTIONS if s in sections]


def build_export(
    client_id: uuid.UUID,
    export_format: str,
    template: str | None,
    sections: list[str],
    payloads: dict[str, Any],
    generated_at: datetime,
) -> ExportResponse:
    media_type, extension = EXPORT_FORMATS[export_format]
    template_name = template or "standard"
    if template:
        filename = f"analytics-{client_id}-{template_name}.{extension}"
    else:
        filename = f"analytics-{client_id}.{extension}"

    return ExportResponse(
        metadata=ExportMetadata(
            client_id=client_id,
            generated_at=generated_at,
            template=template_name,
            format=export_format,
            sections=sections,
        ),
        media_type=media_type,
        filename=filename,
        data={section: payloads[section] for section in sections if section in payloads},
    )
