import asyncio
import io
from typing import Optional

import docx

from domain.schemas import ScoringVerdict

CV_TEXT = "Ada Lovelace\nBackend engineer, 5 years of Go\nDistributed systems at scale"


class FakeScorer:
    """Records calls and answers with a fixed verdict or error."""

    def __init__(self, verdict: Optional[ScoringVerdict] = None, error: Optional[Exception] = None,
                 block: bool = False):
        self.verdict = verdict
        self.error = error
        self.block = block
        self.calls = []
        self.started: Optional[asyncio.Event] = None

    async def score(self, cv_text, job_description, required_skills, **context):
        self.calls.append({"cv_text": cv_text, "job_description": job_description,
                           "required_skills": required_skills, **context})
        if self.block:
            self.started.set()
            await asyncio.sleep(3600)
        if self.error is not None:
            raise self.error
        return self.verdict


def make_pdf(text: str) -> bytes:
    """Smallest single-page PDF showing ``text`` in Helvetica."""
    stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
    return bytes(out)


def make_docx(paragraphs, table_rows=()) -> bytes:
    document = docx.Document()
    for p in paragraphs:
        document.add_paragraph(p)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()
