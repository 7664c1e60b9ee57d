import os
from typing import Iterable, Optional

from domain.errors import ValidationError


def file_extension(file_name: str) -> str:
    """'My CV.PDF' -> '.pdf'; '' when the name has no extension."""
    return os.path.splitext((file_name or "").strip())[1].lower()


def normalize_extension(ext: str) -> str:
    """'PDF' -> '.pdf', '.Docx' -> '.docx'."""
    value = (ext or "").strip().lower()
    if value and not value.startswith("."):
        value = f".{value}"
    return value


def cv_rejection_reason(
    extension: str,
    content_type: Optional[str],
    size: int,
    *,
    max_size: int,
    allowed_extensions: Iterable[str],
    allowed_content_types: Iterable[str],
) -> Optional[str]:
    """Why a CV upload is unacceptable, or None when it is fine.

    Looks only at declared metadata; never touches the bytes.
    """
    if size is None or size <= 0:
        return "File is empty."
    if size > max_size:
        return f"File exceeds the maximum size of {max_size // (1024 * 1024)}MB."
    ext = normalize_extension(extension)
    allowed_ext = {normalize_extension(e) for e in allowed_extensions}
    if ext not in allowed_ext:
        return f"File extension '{ext or extension}' is not allowed. Allowed: {', '.join(sorted(allowed_ext))}."
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype not in {c.lower() for c in allowed_content_types}:
        return f"Content type '{content_type}' is not allowed."
    return None


def is_acceptable_cv(extension, content_type, size, **limits) -> bool:
    return cv_rejection_reason(extension, content_type, size, **limits) is None


def validate_cv_upload(extension, content_type, size, **limits) -> None:
    reason = cv_rejection_reason(extension, content_type, size, **limits)
    if reason:
        raise ValidationError(reason)
