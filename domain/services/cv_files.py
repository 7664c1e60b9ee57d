import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

from domain.caller import Caller
from domain.errors import ExtractionFailed, NotFound, ScreeningError, UnsupportedFormat
from domain.schemas import CVFileResponse
from domain.statuses import CVFileStatus
from domain.validation import cv_rejection_reason, file_extension, validate_cv_upload
from infra.db.models import CVFile
from infra.repositories.applicants_repository import ApplicantsRepository
from infra.repositories.cv_files_repository import CVFilesRepository
from infra.repositories.job_posts_repository import JobPostsRepository
from infra.storage.document_store import DocumentStore
from infra.text.extractor import extract_text

logger = logging.getLogger("screening.cv_files")


class CVFileService:
    """Upload, validation and text extraction of CV documents.

    Extraction walks a CVFile through Uploaded -> Processing -> Processed|Error
    and never backwards.
    """

    def __init__(self, cv_files: CVFilesRepository, applicants: ApplicantsRepository,
                 job_posts: JobPostsRepository, store: DocumentStore, *,
                 max_size: int, allowed_extensions: Iterable[str], allowed_content_types: Iterable[str]):
        self._cv_files = cv_files
        self._applicants = applicants
        self._job_posts = job_posts
        self._store = store
        self._limits = dict(
            max_size=max_size,
            allowed_extensions=list(allowed_extensions),
            allowed_content_types=list(allowed_content_types),
        )

    # -- scoping -------------------------------------------------------------

    def _check_applicant_scope(self, applicant_id: str, caller: Caller) -> None:
        applicant = self._applicants.get(applicant_id)
        job = self._job_posts.get(applicant.job_post_id) if applicant else None
        if not job or not caller.owns(job.user_id):
            raise NotFound("applicant not found")

    def _get_scoped(self, cv_file_id: str, caller: Caller) -> CVFile:
        rec = self._cv_files.get(cv_file_id)
        if not rec:
            raise NotFound("CV file not found")
        try:
            self._check_applicant_scope(rec.applicant_id, caller)
        except NotFound:
            raise NotFound("CV file not found") from None
        return rec

    # -- operations ------------------------------------------------------------

    def validate(self, file_name: str, content_type: Optional[str], size: int) -> None:
        validate_cv_upload(file_extension(file_name), content_type, size, **self._limits)

    def rejection_reason(self, file_name: str, content_type: Optional[str], size: int) -> Optional[str]:
        return cv_rejection_reason(file_extension(file_name), content_type, size, **self._limits)

    def precheck(self, applicant_id: str, file_name: str, content_type: Optional[str], size: int,
                 caller: Caller) -> None:
        """Reject an upload from its declared metadata, before any body is read."""
        self._check_applicant_scope(applicant_id, caller)
        self.validate(file_name, content_type, size)

    def upload(self, applicant_id: str, file_name: str, content_type: Optional[str],
               data: bytes, caller: Caller) -> CVFileResponse:
        self._check_applicant_scope(applicant_id, caller)
        self.validate(file_name, content_type, len(data))
        ext = file_extension(file_name)
        handle = self._store.write(data, ext)
        rec = self._cv_files.save(
            applicant_id=applicant_id,
            file_name=file_name,
            storage_handle=handle,
            content_type=(content_type or "").split(";")[0].strip().lower(),
            file_size=len(data),
            file_extension=ext,
        )
        logger.info(f"Stored CV {rec.id} for applicant {applicant_id} ({len(data)} bytes, {ext})")
        return CVFileResponse.model_validate(rec)

    def list_for_applicant(self, applicant_id: str, caller: Caller) -> List[CVFileResponse]:
        self._check_applicant_scope(applicant_id, caller)
        return [CVFileResponse.model_validate(r) for r in self._cv_files.list_for_applicant(applicant_id)]

    def download(self, cv_file_id: str, caller: Caller) -> Tuple[CVFileResponse, bytes]:
        rec = self._get_scoped(cv_file_id, caller)
        try:
            data = self._store.read(rec.storage_handle)
        except KeyError:
            raise NotFound("CV file content is missing") from None
        return CVFileResponse.model_validate(rec), data

    def delete(self, cv_file_id: str, caller: Caller) -> None:
        rec = self._get_scoped(cv_file_id, caller)
        self._cv_files.delete(rec.id)
        if not self._store.delete(rec.storage_handle):
            logger.warning(f"CV {rec.id} had no stored content at {rec.storage_handle}")

    def extract_for_caller(self, cv_file_id: str, caller: Caller) -> str:
        self._get_scoped(cv_file_id, caller)
        return self.extract(cv_file_id)

    # -- extraction ------------------------------------------------------------

    def begin_extraction(self, cv_file_id: str) -> Optional[CVFile]:
        """Claim an Uploaded CV for extraction.

        Returns None when the CV is already Processed (its text can be reused).
        Raises when the CV is unknown, in Error or claimed by someone else.
        """
        rec = self._cv_files.get(cv_file_id)
        if not rec:
            raise NotFound("CV file not found")
        if rec.status == CVFileStatus.PROCESSED.value:
            return None
        if rec.status == CVFileStatus.ERROR.value:
            raise ExtractionFailed(rec.error_message or "CV extraction previously failed")
        if not self._cv_files.transition(rec.id, CVFileStatus.UPLOADED, CVFileStatus.PROCESSING):
            raise ExtractionFailed("CV file is already being processed")
        reason = cv_rejection_reason(rec.file_extension, rec.content_type, rec.file_size, **self._limits)
        if reason:
            exc = UnsupportedFormat(reason)
            self.fail_extraction(rec.id, exc)
            raise exc
        return rec

    def read_and_extract(self, rec: CVFile) -> str:
        """Blocking part of extraction: read bytes and parse them."""
        try:
            data = self._store.read(rec.storage_handle)
        except KeyError as exc:
            raise ExtractionFailed("CV file content is missing from storage") from exc
        return extract_text(data, rec.file_extension)

    def finish_extraction(self, cv_file_id: str, text: str) -> None:
        self._cv_files.transition(cv_file_id, CVFileStatus.PROCESSING, CVFileStatus.PROCESSED,
                                  extracted_text=text, error_message=None)
        logger.info(f"Extracted {len(text)} chars from CV {cv_file_id}")

    def fail_extraction(self, cv_file_id: str, exc: Exception) -> None:
        self._cv_files.transition(cv_file_id, CVFileStatus.PROCESSING, CVFileStatus.ERROR,
                                  extracted_text=None, error_message=str(exc))
        logger.warning(f"Extraction failed for CV {cv_file_id}: {exc}")

    def extract(self, cv_file_id: str) -> str:
        rec = self.begin_extraction(cv_file_id)
        if rec is None:
            return self._cv_files.get(cv_file_id).extracted_text
        try:
            text = self.read_and_extract(rec)
        except ScreeningError as exc:
            self.fail_extraction(rec.id, exc)
            raise
        except Exception as exc:
            failure = ExtractionFailed(f"Could not read CV file: {exc}")
            self.fail_extraction(rec.id, failure)
            raise failure from exc
        self.finish_extraction(rec.id, text)
        return text

    async def extract_async(self, cv_file_id: str) -> str:
        """Same as extract, with the file read and parse moved off the event loop."""
        rec = self.begin_extraction(cv_file_id)
        if rec is None:
            return self._cv_files.get(cv_file_id).extracted_text
        try:
            text = await asyncio.to_thread(self.read_and_extract, rec)
        except ScreeningError as exc:
            self.fail_extraction(rec.id, exc)
            raise
        except Exception as exc:
            failure = ExtractionFailed(f"Could not read CV file: {exc}")
            self.fail_extraction(rec.id, failure)
            raise failure from exc
        except BaseException as exc:
            self.fail_extraction(rec.id, ExtractionFailed(f"extraction interrupted: {exc!r}"))
            raise
        self.finish_extraction(rec.id, text)
        return text
