import logging

from domain.caller import Caller
from domain.errors import NotFound, ValidationError
from domain.patch import changed_fields
from domain.schemas import ApplicantResponse, CreateApplicantRequest, CVFileResponse, UpdateApplicantRequest
from domain.services.screening_orchestrator import result_to_response
from domain.statuses import JobPostStatus
from infra.db.models import Applicant
from infra.repositories.applicants_repository import ApplicantsRepository
from infra.repositories.cv_files_repository import CVFilesRepository
from infra.repositories.job_posts_repository import JobPostsRepository
from infra.repositories.screening_results_repository import ScreeningResultsRepository
from infra.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)


class ApplicantService:
    def __init__(self, applicants: ApplicantsRepository, job_posts: JobPostsRepository,
                 cv_files: CVFilesRepository, results: ScreeningResultsRepository, store: DocumentStore):
        self._applicants = applicants
        self._job_posts = job_posts
        self._cv_files = cv_files
        self._results = results
        self._store = store

    def _get_scoped(self, applicant_id: str, caller: Caller):
        applicant = self._applicants.get(applicant_id)
        job = self._job_posts.get(applicant.job_post_id) if applicant else None
        if not job or not caller.owns(job.user_id):
            raise NotFound("applicant not found")
        return applicant, job

    def _to_response(self, applicant: Applicant, job_title: str) -> ApplicantResponse:
        return ApplicantResponse(
            id=applicant.id,
            first_name=applicant.first_name,
            last_name=applicant.last_name,
            email=applicant.email,
            phone_number=applicant.phone_number,
            linkedin_profile=applicant.linkedin_profile,
            portfolio_url=applicant.portfolio_url,
            cover_letter=applicant.cover_letter,
            status=applicant.status,
            applied_date=applicant.applied_date,
            last_updated=applicant.last_updated,
            job_post_id=applicant.job_post_id,
            job_title=job_title,
            cv_files=[CVFileResponse.model_validate(cv) for cv in self._cv_files.list_for_applicant(applicant.id)],
            screening_results=[result_to_response(r) for r in self._results.list_for_applicant(applicant.id)],
        )

    def create(self, job_post_id: str, req: CreateApplicantRequest, caller: Caller) -> ApplicantResponse:
        job = self._job_posts.get(job_post_id)
        if not job or not caller.owns(job.user_id):
            raise NotFound("job post not found")
        if job.status == JobPostStatus.CLOSED.value:
            raise ValidationError(f"Job post {job.id} is closed to new applicants")
        applicant = self._applicants.create(job.id, req.model_dump())
        logger.info(f"Applicant {applicant.id} created for job {job.id}")
        return self._to_response(applicant, job.title)

    def get(self, applicant_id: str, caller: Caller) -> ApplicantResponse:
        applicant, job = self._get_scoped(applicant_id, caller)
        return self._to_response(applicant, job.title)

    def update(self, applicant_id: str, req: UpdateApplicantRequest, caller: Caller) -> ApplicantResponse:
        _, job = self._get_scoped(applicant_id, caller)
        applicant = self._applicants.update(applicant_id, changed_fields(req))
        if applicant is None:
            raise NotFound("applicant not found")
        return self._to_response(applicant, job.title)

    def delete(self, applicant_id: str, caller: Caller) -> None:
        self._get_scoped(applicant_id, caller)
        handles = self._applicants.delete(applicant_id)
        if handles is None:
            raise NotFound("applicant not found")
        for handle in handles:
            self._store.delete(handle)
        logger.info(f"Applicant {applicant_id} deleted with {len(handles)} CV file(s)")
