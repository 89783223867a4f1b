"""PDF merging and form handling."""

import logging
from typing import Any

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

TRUTHY_VALUES = {"true", "yes", "on", "1", "x", "checked"}


class PdfError(Exception):
    """A PDF could not be read or written."""


def _open(data: bytes, label: str = "document") -> "fitz.Document":
    try:
        return fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise PdfError(f"cannot open {label} as PDF: {e}") from e


def merge_pdfs(documents: list[bytes]) -> bytes:
    """Concatenate PDFs in the given order."""
    if not documents:
        raise PdfError("nothing to merge")

    merged = fitz.open()
    try:
        for i, data in enumerate(documents):
            source = _open(data, f"document #{i + 1}")
            try:
                merged.insert_pdf(source)
            finally:
                source.close()
        return merged.tobytes(garbage=3, deflate=True)
    finally:
        merged.close()


def extract_form(data: bytes) -> dict[str, Any]:
    """List the form fields of a PDF with their current values.

    Returns:
        ``{"fields": [{"name", "type", "label", "value", "page"}, ...]}``
    """
    doc = _open(data)
    try:
        fields = []
        for page in doc:
            for widget in page.widgets() or []:
                fields.append(
                    {
                        "name": widget.field_name,
                        "type": widget.field_type_string,
                        "label": widget.field_label or "",
                        "value": widget.field_value,
                        "page": page.number + 1,
                    }
                )
        return {"fields": fields}
    finally:
        doc.close()


def _form_values(form_data: Any) -> dict[str, Any]:
    """Accept either the extract_form() shape or a flat name -> value mapping."""
    if isinstance(form_data, dict) and isinstance(form_data.get("fields"), list):
        values = {}
        for field in form_data["fields"]:
            if isinstance(field, dict) and "name" in field:
                values[field["name"]] = field.get("value")
        return values
    if isinstance(form_data, dict):
        return dict(form_data)
    raise PdfError("form data must be an object of field values")


def fill_form(data: bytes, form_data: Any) -> tuple[bytes, list[str]]:
    """Fill form fields by name.

    Returns:
        The filled PDF and the names from ``form_data`` that matched no field.
    """
    values = _form_values(form_data)
    doc = _open(data)
    try:
        filled: set[str] = set()
        for page in doc:
            for widget in page.widgets() or []:
                if widget.field_name not in values:
                    continue
                value = values[widget.field_name]
                if widget.field_type in (fitz.PDF_WIDGET_TYPE_CHECKBOX, fitz.PDF_WIDGET_TYPE_RADIOBUTTON):
                    checked = value is True or str(value).strip().lower() in TRUTHY_VALUES
                    widget.field_value = widget.on_state() if checked else "Off"
                else:
                    widget.field_value = "" if value is None else str(value)
                widget.update()
                filled.add(widget.field_name)
        if not filled and values:
            raise PdfError("none of the given fields exist in this PDF")
        unknown = sorted(name for name in values if name not in filled)
        return doc.tobytes(garbage=3, deflate=True), unknown
    finally:
        doc.close()
