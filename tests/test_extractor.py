import pytest

from domain.errors import ExtractionFailed, UnsupportedFormat
from helpers import make_docx, make_pdf
from infra.text.extractor import extract_text


def test_txt_with_bom_and_trailing_spaces():
    text = extract_text("\ufeffAda Lovelace   \nGo engineer\n\n".encode("utf-8"), ".txt")
    assert text == "Ada Lovelace\nGo engineer"


def test_txt_falls_back_to_latin1():
    assert extract_text("Zoë Müller".encode("latin-1"), "TXT") == "Zoë Müller"


def test_docx_paragraphs_and_tables():
    data = make_docx(["Ada Lovelace", "Backend engineer"], table_rows=[("Go", "5 years")])
    text = extract_text(data, ".docx")
    assert "Ada Lovelace" in text
    assert "Backend engineer" in text
    assert "Go | 5 years" in text


def test_pdf_text_is_extracted():
    text = extract_text(make_pdf("Distributed systems with Kubernetes"), ".pdf")
    assert "Distributed" in text
    assert "Kubernetes" in text


def test_legacy_doc_pulls_text_runs():
    data = b"\xd0\xcf\x11\xe0\x00\x01" + "Ada Lovelace Go engineer".encode("utf-16-le") + b"\x00\x01\x02"
    assert "Ada Lovelace Go engineer" in extract_text(data, ".doc")


def test_doc_that_is_really_docx():
    assert "Ada" in extract_text(make_docx(["Ada"]), ".doc")


def test_corrupt_pdf_fails_extraction():
    with pytest.raises(ExtractionFailed, match="Could not read .pdf document"):
        extract_text(b"this is not a pdf", ".pdf")


def test_empty_document_fails_extraction():
    with pytest.raises(ExtractionFailed, match="No text"):
        extract_text(b"   \n\t ", ".txt")


def test_unknown_extension_is_unsupported():
    with pytest.raises(UnsupportedFormat):
        extract_text(b"MZ...", ".exe")


def test_same_input_same_output():
    data = make_docx(["Repeatable"])
    assert extract_text(data, ".docx") == extract_text(data, ".docx")
