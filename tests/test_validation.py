import pytest

from domain.errors import ValidationError
from domain.validation import file_extension, is_acceptable_cv, normalize_extension, validate_cv_upload

LIMITS = dict(
    max_size=1024,
    allowed_extensions=[".pdf", ".docx", "txt"],
    allowed_content_types=["application/pdf", "text/plain",
                           "application/vnd.openxmlformats-officedocument.wordprocessingml.document"],
)


def test_file_extension_is_lowercased():
    assert file_extension("My CV.PDF") == ".pdf"
    assert file_extension("resume") == ""


def test_normalize_extension_adds_dot():
    assert normalize_extension("PDF") == ".pdf"
    assert normalize_extension(".Docx") == ".docx"


@pytest.mark.parametrize("ext,ctype,size", [
    (".pdf", "application/pdf", 10),
    (".PDF", "application/pdf", 1024),
    (".txt", "text/plain; charset=utf-8", 5),
])
def test_accepts_allowed_files(ext, ctype, size):
    assert is_acceptable_cv(ext, ctype, size, **LIMITS)


@pytest.mark.parametrize("ext,ctype,size", [
    (".pdf", "application/pdf", 0),
    (".pdf", "application/pdf", 1025),
    (".exe", "application/pdf", 10),
    (".pdf", "image/png", 10),
    (".pdf", None, 10),
])
def test_rejects_disallowed_files(ext, ctype, size):
    assert not is_acceptable_cv(ext, ctype, size, **LIMITS)


def test_validate_names_the_reason():
    with pytest.raises(ValidationError, match="not allowed"):
        validate_cv_upload(".exe", "application/octet-stream", 10, **LIMITS)
    with pytest.raises(ValidationError, match="maximum size"):
        validate_cv_upload(".pdf", "application/pdf", 4096, **LIMITS)
