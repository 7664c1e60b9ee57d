import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Set

from pydantic import ValidationError as PydanticValidationError

from domain.caller import Caller
from domain.codecs import decode_string_list
from domain.errors import AlreadyInProgress, InvalidTransition, NotFound, ScreeningError, ValidationError
from domain.schemas import ScoringVerdict, ScreeningResultResponse
from domain.services.cv_files import CVFileService
from domain.statuses import ScreeningStatus
from infra.db.models import ScreeningResult, utcnow
from infra.repositories.applicants_repository import ApplicantsRepository
from infra.repositories.cv_files_repository import CVFilesRepository
from infra.repositories.job_posts_repository import JobPostsRepository
from infra.repositories.screening_results_repository import ScreeningResultsRepository

logger = logging.getLogger("screening.orchestrator")

OVERRIDE_FAILED_MESSAGE = "Marked as failed by operator"
STALE_MESSAGE = "screening interrupted"
CANCELLED_MESSAGE = "screening cancelled"


def result_to_response(rec: ScreeningResult) -> ScreeningResultResponse:
    return ScreeningResultResponse(
        id=rec.id,
        applicant_id=rec.applicant_id,
        job_post_id=rec.job_post_id,
        overall_score=rec.overall_score,
        summary=rec.summary,
        strengths=decode_string_list(rec.strengths),
        weaknesses=decode_string_list(rec.weaknesses),
        detailed_analysis=rec.detailed_analysis,
        status=rec.status,
        created_at=rec.created_at,
        completed_at=rec.completed_at,
        error_message=rec.error_message,
    )


def _checked_verdict(verdict) -> ScoringVerdict:
    data = verdict.model_dump() if isinstance(verdict, ScoringVerdict) else verdict
    try:
        return ScoringVerdict.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid verdict: {exc}") from exc


class ScreeningOrchestrator:
    """Runs applicants through extraction -> scoring -> persistence.

    Every attempt gets its own ScreeningResult row. Once that row exists the
    attempt always ends Completed or Failed; failures of one applicant never
    reach the others in a batch.
    """

    def __init__(self, results: ScreeningResultsRepository, applicants: ApplicantsRepository,
                 job_posts: JobPostsRepository, cv_files: CVFilesRepository,
                 cv_service: CVFileService, scorer, *,
                 max_concurrency: int = 4, stale_after_minutes: int = 30):
        self._results = results
        self._applicants = applicants
        self._job_posts = job_posts
        self._cv_files = cv_files
        self._cv_service = cv_service
        self._scorer = scorer
        self._max_concurrency = max(1, max_concurrency)
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop = None
        self._stale_after = timedelta(minutes=stale_after_minutes)
        self._background: Set[asyncio.Task] = set()

    @property
    def semaphore(self) -> asyncio.Semaphore:
        # one per event loop; asyncio primitives cannot cross loops
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self._max_concurrency)
            self._semaphore_loop = loop
        return self._semaphore

    # -- scoping ---------------------------------------------------------------

    def _scoped_job(self, job_post_id: str, caller: Caller):
        job = self._job_posts.get(job_post_id)
        if not job or not caller.owns(job.user_id):
            raise NotFound("job post not found")
        return job

    def _scoped_result(self, result_id: str, caller: Caller) -> ScreeningResult:
        rec = self._results.get(result_id)
        job = self._job_posts.get(rec.job_post_id) if rec else None
        if not job or not caller.owns(job.user_id):
            raise NotFound("screening result not found")
        return rec

    # -- pipeline --------------------------------------------------------------

    def _record_failure(self, result_id: str, message: str) -> None:
        try:
            self._results.fail(result_id, message)
        except ScreeningError as exc:
            # an operator override or delete got there first
            logger.warning(f"Could not mark screening {result_id} as Failed: {exc}")

    async def process(self, applicant_id: str, job_post_id: str, caller: Optional[Caller] = None) -> bool:
        """Screen one applicant; True when the attempt ends Completed.

        Unknown ids, a cross-job pair or an attempt already in flight are
        raised before any row is written. Everything after that is recorded
        on the result row instead of being raised.
        """
        applicant = self._applicants.get(applicant_id)
        if not applicant:
            raise NotFound("applicant not found")
        job = self._scoped_job(job_post_id, caller) if caller else self._job_posts.get(job_post_id)
        if not job:
            raise NotFound("job post not found")
        if applicant.job_post_id != job.id:
            raise ValidationError(f"Applicant {applicant_id} does not belong to job post {job_post_id}")

        result = self._results.create_processing(applicant.id, job.id)
        logger.info(f"Screening {result.id} started for applicant {applicant.id} on job {job.id}")

        try:
            async with self.semaphore:
                cv = self._cv_files.pick_for_screening(applicant.id)
                if cv is None:
                    self._record_failure(result.id, "No processable CV file found for applicant")
                    logger.info(f"Screening {result.id} failed: applicant {applicant.id} has no usable CV")
                    return False
                cv_text = await self._cv_service.extract_async(cv.id)
                verdict = _checked_verdict(await self._scorer.score(
                    cv_text,
                    job.description,
                    job.required_skills,
                    preferred_skills=job.preferred_skills,
                    responsibilities=job.responsibilities,
                    experience_level=job.experience_level,
                ))
            self._results.complete(result.id, verdict)
        except ScreeningError as exc:
            message = exc.message or str(exc) or type(exc).__name__
            self._record_failure(result.id, message)
            logger.info(f"Screening {result.id} failed: {message}")
            return False
        except asyncio.CancelledError:
            self._record_failure(result.id, CANCELLED_MESSAGE)
            logger.warning(f"Screening {result.id} cancelled")
            raise
        except Exception as exc:
            logger.exception(f"Screening {result.id} crashed")
            self._record_failure(result.id, f"unexpected error: {exc}")
            return False

        if self._applicants.promote_after_screening(applicant.id):
            logger.info(f"Applicant {applicant.id} moved to Under Review")
        logger.info(f"Screening {result.id} completed with score {verdict.overall_score}")
        return True

    async def screen_applicant(self, applicant_id: str, caller: Caller) -> ScreeningResultResponse:
        """Screen one applicant against their own job and return the attempt."""
        applicant = self._applicants.get(applicant_id)
        if not applicant:
            raise NotFound("applicant not found")
        try:
            self._scoped_job(applicant.job_post_id, caller)
        except NotFound:
            raise NotFound("applicant not found") from None
        await self.process(applicant.id, applicant.job_post_id)
        latest = self._results.list_for_applicant(applicant.id)
        return result_to_response(latest[0])

    async def _process_isolated(self, applicant_id: str, job_post_id: str) -> bool:
        try:
            return await self.process(applicant_id, job_post_id)
        except AlreadyInProgress as exc:
            logger.warning(f"Skipping applicant {applicant_id}: {exc}")
        except ScreeningError as exc:
            logger.warning(f"Could not start screening for applicant {applicant_id}: {exc}")
        except Exception:
            logger.exception(f"Could not start screening for applicant {applicant_id}")
        return False

    async def start_batch(self, applicant_ids: Sequence[str], job_post_id: str, caller: Caller,
                          wait: bool = True) -> bool:
        """Validate the whole batch up front, then screen each applicant independently.

        Any applicant outside the job rejects the batch before work starts.
        The return value says the batch was accepted, not that every
        applicant scored.
        """
        job = self._scoped_job(job_post_id, caller)
        ids = list(dict.fromkeys(a for a in applicant_ids if a))
        if not ids:
            raise ValidationError("At least one applicant id is required")
        in_job = set(self._applicants.ids_in_job(ids, job.id))
        foreign = [a for a in ids if a not in in_job]
        if foreign:
            raise ValidationError(
                f"Applicants do not belong to job post {job.id}: {', '.join(foreign)}")

        logger.info(f"Batch screening of {len(ids)} applicant(s) accepted for job {job.id}")
        if wait:
            outcomes = await asyncio.gather(*(self._process_isolated(a, job.id) for a in ids))
            logger.info(f"Batch for job {job.id} finished: {sum(outcomes)}/{len(ids)} completed")
        else:
            for applicant_id in ids:
                task = asyncio.create_task(self._process_isolated(applicant_id, job.id))
                self._background.add(task)
                task.add_done_callback(self._background.discard)
        return True

    async def shutdown(self) -> None:
        """Cancel background screenings; each one records itself as Failed."""
        pending = list(self._background)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} background screening(s)")

    # -- results ---------------------------------------------------------------

    def get_result(self, result_id: str, caller: Caller) -> ScreeningResultResponse:
        return result_to_response(self._scoped_result(result_id, caller))

    def get_results_for_applicant(self, applicant_id: str, caller: Caller) -> List[ScreeningResultResponse]:
        applicant = self._applicants.get(applicant_id)
        if not applicant:
            raise NotFound("applicant not found")
        try:
            self._scoped_job(applicant.job_post_id, caller)
        except NotFound:
            raise NotFound("applicant not found") from None
        return [result_to_response(r) for r in self._results.list_for_applicant(applicant.id)]

    def override_status(self, result_id: str, status, caller: Caller,
                        error_message: Optional[str] = None,
                        verdict: Optional[ScoringVerdict] = None) -> ScreeningResultResponse:
        """Force a stuck Processing row into a terminal state without re-running anything."""
        rec = self._scoped_result(result_id, caller)
        try:
            target = ScreeningStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown screening status: {status}") from None
        if target is ScreeningStatus.PROCESSING:
            raise InvalidTransition("A screening can only be overridden to Completed or Failed")

        if target is ScreeningStatus.COMPLETED:
            if verdict is None:
                raise ValidationError("A verdict is required to mark a screening as Completed")
            verdict = _checked_verdict(verdict)
            updated = self._results.complete(rec.id, verdict)
            self._applicants.promote_after_screening(rec.applicant_id)
        else:
            updated = self._results.fail(rec.id, error_message or OVERRIDE_FAILED_MESSAGE)
        logger.warning(f"Screening {rec.id} overridden to {target.value} by {caller.user_id}")
        return result_to_response(updated)

    def delete_result(self, result_id: str, caller: Caller) -> None:
        rec = self._scoped_result(result_id, caller)
        if rec.status == ScreeningStatus.PROCESSING.value:
            raise InvalidTransition("Screening is still processing; override its status first")
        self._results.delete(rec.id)
        logger.info(f"Screening {rec.id} deleted by {caller.user_id}")

    def fail_stale(self, older_than: Optional[datetime] = None) -> int:
        """Fail Processing rows left behind by a crash or restart."""
        cutoff = older_than or (utcnow() - self._stale_after)
        failed = 0
        for result_id in self._results.list_stale(cutoff):
            try:
                self._results.fail(result_id, STALE_MESSAGE)
                failed += 1
            except ScreeningError as exc:
                logger.debug(f"Stale screening {result_id} already settled: {exc}")
        if failed:
            logger.warning(f"Marked {failed} stale screening(s) as Failed")
        return failed

    async def sweep_stale(self, interval: float) -> None:
        """Run fail_stale every ``interval`` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            try:
                self.fail_stale()
            except Exception:
                logger.exception("Stale screening sweep failed")
