import io
import re
import zipfile
from typing import List

import docx
import pdfplumber

from domain.errors import ExtractionFailed, UnsupportedFormat
from domain.validation import normalize_extension

SUPPORTED_EXTENSIONS = (".pdf", ".doc", ".docx", ".txt")

# runs of printable characters in a legacy Word binary
_ASCII_RUN = re.compile(rb"[\x20-\x7e\t\r\n]{4,}")
_UTF16_RUN = re.compile(rb"(?:[\x20-\x7e\t\r\n]\x00){4,}")


def parse_pdf_bytes(data: bytes) -> str:
    text_parts = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            t = page.extract_text() or ""
            text_parts.append(t)
    return "\n".join(text_parts)


def parse_docx_bytes(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    parts: List[str] = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells if c.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    return "\n".join(parts)


def parse_doc_bytes(data: bytes) -> str:
    # some ".doc" uploads are really OOXML documents
    if zipfile.is_zipfile(io.BytesIO(data)):
        return parse_docx_bytes(data)
    utf16 = [m.group().decode("utf-16-le") for m in _UTF16_RUN.finditer(data)]
    runs = utf16 if sum(map(len, utf16)) > 0 else [
        m.group().decode("ascii") for m in _ASCII_RUN.finditer(data)]
    lines = [" ".join(run.split()) for run in runs]
    return "\n".join(line for line in lines if len(line) >= 4)


def parse_txt_bytes(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


_PARSERS = {
    ".pdf": parse_pdf_bytes,
    ".docx": parse_docx_bytes,
    ".doc": parse_doc_bytes,
    ".txt": parse_txt_bytes,
}


def extract_text(data: bytes, extension: str) -> str:
    """Turn a CV document into plain text.

    Pure function of its inputs. Raises UnsupportedFormat for an extension
    outside SUPPORTED_EXTENSIONS and ExtractionFailed when the content cannot
    be read or holds no text.
    """
    ext = normalize_extension(extension)
    parser = _PARSERS.get(ext)
    if parser is None:
        raise UnsupportedFormat(f"Unsupported file format: {ext or extension!r}")
    try:
        text = parser(data)
    except Exception as exc:
        # pdfminer and python-docx raise a wide range of types on corrupt input
        raise ExtractionFailed(f"Could not read {ext} document: {exc}") from exc
    text = re.sub(r"[ \t]+\n", "\n", text.replace("\x00", "")).strip()
    if not text:
        raise ExtractionFailed(f"No text could be extracted from the {ext} document")
    return text
