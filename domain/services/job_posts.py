import logging
import math
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import sessionmaker

from domain.caller import Caller
from domain.errors import NotFound, ValidationError
from domain.patch import changed_fields
from domain.schemas import (
    CreateJobPostRequest,
    JobPostFilter,
    JobPostListItem,
    JobPostPage,
    JobPostResponse,
    UpdateJobPostRequest,
)
from domain.services.applicant_query import clamp_page
from domain.statuses import JobPostStatus
from infra.db.models import Applicant, JobPost
from infra.repositories.job_posts_repository import JobPostsRepository
from infra.storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

JOB_SORT_COLUMNS = {
    "title": JobPost.title,
    "location": JobPost.location,
    "department": JobPost.department,
    "status": JobPost.status,
    "posted_date": JobPost.posted_date,
    "employment_type": JobPost.employment_type,
    "experience_level": JobPost.experience_level,
}


class JobPostService:
    def __init__(self, job_posts: JobPostsRepository, store: DocumentStore,
                 session_factory: sessionmaker, *,
                 default_page_size: int = 10, min_page_size: int = 1, max_page_size: int = 100):
        self._job_posts = job_posts
        self._store = store
        self._session = session_factory
        self._paging = dict(default_size=default_page_size, min_size=min_page_size, max_size=max_page_size)

    def _get_scoped(self, job_post_id: str, caller: Caller) -> JobPost:
        job = self._job_posts.get(job_post_id)
        if not job or not caller.owns(job.user_id):
            raise NotFound("job post not found")
        return job

    def _to_response(self, job: JobPost) -> JobPostResponse:
        resp = JobPostResponse.model_validate(job)
        resp.applicant_count = self._job_posts.applicant_count(job.id)
        return resp

    def create(self, req: CreateJobPostRequest, caller: Caller) -> JobPostResponse:
        job = self._job_posts.create(caller.user_id, req.model_dump())
        logger.info(f"Job post {job.id} created by {caller.user_id}")
        return JobPostResponse.model_validate(job)

    def get(self, job_post_id: str, caller: Caller) -> JobPostResponse:
        return self._to_response(self._get_scoped(job_post_id, caller))

    def update(self, job_post_id: str, req: UpdateJobPostRequest, caller: Caller) -> JobPostResponse:
        current = self._get_scoped(job_post_id, caller)
        changes = changed_fields(req)
        salary_min = changes.get("salary_min", current.salary_min)
        salary_max = changes.get("salary_max", current.salary_max)
        if salary_min is not None and salary_max is not None and salary_min > salary_max:
            raise ValidationError("salary_min must not exceed salary_max")
        job = self._job_posts.update(job_post_id, changes)
        if job is None:
            raise NotFound("job post not found")
        logger.info(f"Job post {job.id} updated: {sorted(changes)}")
        return self._to_response(job)

    def delete(self, job_post_id: str, caller: Caller) -> None:
        self._get_scoped(job_post_id, caller)
        handles = self._job_posts.delete(job_post_id)
        if handles is None:
            raise NotFound("job post not found")
        for handle in handles:
            self._store.delete(handle)
        logger.info(f"Job post {job_post_id} deleted with {len(handles)} CV file(s)")

    def list(self, flt: Optional[JobPostFilter], page: Optional[int], page_size: Optional[int],
             caller: Caller, sort_by: Optional[str] = None, direction: str = "desc") -> JobPostPage:
        flt = flt or JobPostFilter()
        page, page_size = clamp_page(page, page_size, **self._paging)

        scope = [] if caller.is_admin else [JobPost.user_id == caller.user_id]
        conds = list(scope)
        if flt.status:
            conds.append(JobPost.status == flt.status.value)
        if flt.department:
            conds.append(JobPost.department.icontains(flt.department, autoescape=True))
        if flt.location:
            conds.append(JobPost.location.icontains(flt.location, autoescape=True))
        if flt.employment_type:
            conds.append(JobPost.employment_type == flt.employment_type)
        if flt.experience_level:
            conds.append(JobPost.experience_level == flt.experience_level)
        term = (flt.search_text or "").strip()
        if term:
            conds.append(or_(
                JobPost.title.icontains(term, autoescape=True),
                JobPost.description.icontains(term, autoescape=True),
                JobPost.department.icontains(term, autoescape=True),
                JobPost.location.icontains(term, autoescape=True),
            ))

        # unknown sort keys fall back to newest first
        column = JOB_SORT_COLUMNS.get((sort_by or "").lower(), JobPost.posted_date)
        order = (column.asc(), JobPost.id.asc()) if direction == "asc" else (column.desc(), JobPost.id.desc())

        applicant_counts = (select(Applicant.job_post_id, func.count(Applicant.id).label("applicants"))
                            .group_by(Applicant.job_post_id)
                            .subquery())
        with self._session() as s:
            total = s.scalar(select(func.count(JobPost.id)).where(*conds)) or 0
            rows = s.execute(
                select(JobPost, func.coalesce(applicant_counts.c.applicants, 0))
                .outerjoin(applicant_counts, applicant_counts.c.job_post_id == JobPost.id)
                .where(*conds)
                .order_by(*order)
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
            by_status = dict(s.execute(
                select(JobPost.status, func.count(JobPost.id)).where(*scope).group_by(JobPost.status)
            ).all())
            total_applicants = s.scalar(
                select(func.count(Applicant.id))
                .join(JobPost, JobPost.id == Applicant.job_post_id)
                .where(*scope)
            ) or 0

        items = []
        for job, count in rows:
            item = JobPostListItem.model_validate(job)
            item.applicant_count = count
            items.append(item)
        active = by_status.get(JobPostStatus.ACTIVE.value, 0)
        return JobPostPage(
            items=items,
            page=page,
            page_size=page_size,
            total_count=total,
            total_pages=math.ceil(total / page_size) if total else 0,
            active_job_posts=active,
            inactive_job_posts=sum(by_status.values()) - active,
            total_applicants=total_applicants,
        )
