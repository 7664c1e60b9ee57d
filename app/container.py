from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.orm import sessionmaker

from app.settings import Settings
from domain.services.applicant_query import ApplicantQueryEngine
from domain.services.applicants import ApplicantService
from domain.services.cv_files import CVFileService
from domain.services.job_posts import JobPostService
from domain.services.screening_orchestrator import ScreeningOrchestrator
from infra.llm.client import build_scoring_client
from infra.repositories.applicants_repository import ApplicantsRepository
from infra.repositories.cv_files_repository import CVFilesRepository
from infra.repositories.job_posts_repository import JobPostsRepository
from infra.repositories.screening_results_repository import ScreeningResultsRepository
from infra.storage.document_store import DocumentStore


@dataclass
class Services:
    session_factory: sessionmaker
    job_posts: JobPostService
    applicants: ApplicantService
    cv_files: CVFileService
    orchestrator: ScreeningOrchestrator
    query: ApplicantQueryEngine


def build_services(settings: Settings, session_factory: sessionmaker, *,
                   store: Optional[DocumentStore] = None, scorer=None,
                   transport: Optional[httpx.AsyncBaseTransport] = None) -> Services:
    """Wire every component from explicit collaborators."""
    store = store or DocumentStore(settings.STORAGE_DIR)
    scorer = scorer or build_scoring_client(settings, transport=transport)
    paging = dict(
        default_page_size=settings.DEFAULT_PAGE_SIZE,
        min_page_size=settings.MIN_PAGE_SIZE,
        max_page_size=settings.MAX_PAGE_SIZE,
    )

    job_posts_repo = JobPostsRepository(session_factory)
    applicants_repo = ApplicantsRepository(session_factory)
    cv_files_repo = CVFilesRepository(session_factory)
    results_repo = ScreeningResultsRepository(session_factory)

    cv_files = CVFileService(
        cv_files_repo, applicants_repo, job_posts_repo, store,
        max_size=settings.MAX_CV_FILE_SIZE,
        allowed_extensions=settings.ALLOWED_CV_EXTENSIONS,
        allowed_content_types=settings.ALLOWED_CV_CONTENT_TYPES,
    )
    orchestrator = ScreeningOrchestrator(
        results_repo, applicants_repo, job_posts_repo, cv_files_repo, cv_files, scorer,
        max_concurrency=settings.SCREENING_MAX_CONCURRENCY,
        stale_after_minutes=settings.SCREENING_STALE_AFTER_MINUTES,
    )
    return Services(
        session_factory=session_factory,
        job_posts=JobPostService(job_posts_repo, store, session_factory, **paging),
        applicants=ApplicantService(applicants_repo, job_posts_repo, cv_files_repo, results_repo, store),
        cv_files=cv_files,
        orchestrator=orchestrator,
        query=ApplicantQueryEngine(session_factory, **paging),
    )
