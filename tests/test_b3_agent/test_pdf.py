"""Tests for PDF merging and form handling."""

import fitz
import pytest

from b3_agents.b3_agent.pdf import PdfError, extract_form, fill_form, merge_pdfs


def make_pdf(pages: int = 1, label: str = "doc") -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page()
        page.insert_text((72, 72), f"{label} page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


def make_form() -> bytes:
    """A one-page PDF with a text field and a checkbox."""
    doc = fitz.open()
    page = doc.new_page()

    text_field = fitz.Widget()
    text_field.field_name = "full_name"
    text_field.field_label = "Full name"
    text_field.field_type = fitz.PDF_WIDGET_TYPE_TEXT
    text_field.rect = fitz.Rect(72, 72, 300, 92)
    text_field.field_value = ""
    page.add_widget(text_field)

    checkbox = fitz.Widget()
    checkbox.field_name = "agree"
    checkbox.field_type = fitz.PDF_WIDGET_TYPE_CHECKBOX
    checkbox.rect = fitz.Rect(72, 110, 90, 128)
    checkbox.field_value = False
    page.add_widget(checkbox)

    data = doc.tobytes()
    doc.close()
    return data


def page_count(data: bytes) -> int:
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return doc.page_count
    finally:
        doc.close()


class TestMergePdfs:
    """Test suite for merge_pdfs."""

    def test_merge_keeps_order(self):
        merged = merge_pdfs([make_pdf(2, "first"), make_pdf(1, "second")])

        doc = fitz.open(stream=merged, filetype="pdf")
        try:
            assert doc.page_count == 3
            assert "first page 1" in doc[0].get_text()
            assert "second page 1" in doc[2].get_text()
        finally:
            doc.close()

    def test_merge_nothing(self):
        with pytest.raises(PdfError, match="nothing to merge"):
            merge_pdfs([])

    def test_merge_invalid_document(self):
        with pytest.raises(PdfError, match="document #2"):
            merge_pdfs([make_pdf(), b"not a pdf"])


class TestForms:
    """Test suite for extract_form and fill_form."""

    def test_extract_fields(self):
        form = extract_form(make_form())

        fields = {f["name"]: f for f in form["fields"]}
        assert set(fields) == {"full_name", "agree"}
        assert fields["full_name"]["label"] == "Full name"
        assert fields["full_name"]["page"] == 1

    def test_extract_without_fields(self):
        assert extract_form(make_pdf()) == {"fields": []}

    def test_fill_flat_mapping(self):
        filled, unknown = fill_form(make_form(), {"full_name": "Jane Doe", "agree": "yes", "extra": "?"})

        fields = {f["name"]: f for f in extract_form(filled)["fields"]}
        assert fields["full_name"]["value"] == "Jane Doe"
        assert fields["agree"]["value"] not in ("Off", "", False, None)
        assert unknown == ["extra"]
        assert page_count(filled) == 1

    def test_fill_extract_shape(self):
        """Test that the ExtractForm output with updated values is accepted."""
        form = extract_form(make_form())
        for field in form["fields"]:
            if field["name"] == "full_name":
                field["value"] = "John Smith"

        filled, _ = fill_form(make_form(), form)

        fields = {f["name"]: f for f in extract_form(filled)["fields"]}
        assert fields["full_name"]["value"] == "John Smith"

    def test_fill_no_matching_field(self):
        with pytest.raises(PdfError, match="none of the given fields"):
            fill_form(make_form(), {"nickname": "J"})

    def test_fill_invalid_form_data(self):
        with pytest.raises(PdfError):
            fill_form(make_form(), ["full_name"])
