import logging
import math
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import sessionmaker

from domain.caller import Caller
from domain.errors import NotFound, ValidationError
from domain.schemas import (
    ApplicantFilter,
    ApplicantListItem,
    ApplicantPage,
    ApplicantSort,
    CVFileResponse,
    LatestScreening,
    ProcessingStatus,
    ScreenedApplicant,
)
from domain.statuses import (
    CV_PROGRESS,
    NO_CV_STATUS,
    NOT_STARTED_STATUS,
    SCREENING_PROGRESS,
    overall_progress,
)
from infra.db.models import Applicant, CVFile, JobPost, ScreeningResult
from infra.db.session import SessionLocal

logger = logging.getLogger("screening.query")

SORT_COLUMNS = {
    "first_name": Applicant.first_name,
    "last_name": Applicant.last_name,
    "email": Applicant.email,
    "status": Applicant.status,
    "applied_date": Applicant.applied_date,
}
DEFAULT_SORT = "applied_date"


def clamp_page(page: Optional[int], page_size: Optional[int], *,
               default_size: int, min_size: int, max_size: int) -> Tuple[int, int]:
    """Out-of-range paging is clamped, never rejected."""
    page = max(1, page or 1)
    size = default_size if page_size is None else page_size
    return page, max(min_size, min(max_size, size))


def _latest_result_ids(applicant_ids):
    """Subquery: id of the newest ScreeningResult per applicant."""
    rn = func.row_number().over(
        partition_by=ScreeningResult.applicant_id,
        order_by=(ScreeningResult.created_at.desc(), ScreeningResult.id.desc()),
    ).label("rn")
    ranked = select(ScreeningResult.id, rn)
    if applicant_ids is not None:
        ranked = ranked.where(ScreeningResult.applicant_id.in_(applicant_ids))
    ranked = ranked.subquery()
    return select(ranked.c.id).where(ranked.c.rn == 1)


class ApplicantQueryEngine:
    """Read side over applicants, their CVs and their latest screening.

    Ownership scoping is part of every WHERE clause, so counts never include
    rows the caller cannot see. A page is served with a fixed number of
    queries regardless of its size.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal, *,
                 default_page_size: int = 10, min_page_size: int = 1, max_page_size: int = 100):
        self._session = session_factory
        self._paging = dict(default_size=default_page_size, min_size=min_page_size, max_size=max_page_size)

    # -- query building ----------------------------------------------------------

    @staticmethod
    def _scope(caller: Caller) -> list:
        return [] if caller.is_admin else [JobPost.user_id == caller.user_id]

    @staticmethod
    def _search(term: str):
        full_name = Applicant.first_name + " " + Applicant.last_name
        return or_(
            Applicant.first_name.icontains(term, autoescape=True),
            Applicant.last_name.icontains(term, autoescape=True),
            full_name.icontains(term, autoescape=True),
            Applicant.email.icontains(term, autoescape=True),
            Applicant.phone_number.icontains(term, autoescape=True),
        )

    def _conditions(self, flt: ApplicantFilter, caller: Caller) -> list:
        conds = self._scope(caller)
        if flt.job_post_id:
            conds.append(Applicant.job_post_id == flt.job_post_id)
        if flt.status:
            conds.append(Applicant.status == flt.status.value)
        term = (flt.search_text or "").strip()
        if term:
            conds.append(self._search(term))
        if flt.applied_from:
            conds.append(Applicant.applied_date >= flt.applied_from)
        if flt.applied_to:
            conds.append(Applicant.applied_date <= flt.applied_to)
        return conds

    @staticmethod
    def _order_by(sort: Optional[ApplicantSort]):
        sort = sort or ApplicantSort()
        key = sort.sort_by or DEFAULT_SORT
        column = SORT_COLUMNS.get(key)
        if column is None:
            raise ValidationError(
                f"Cannot sort by '{key}'; expected one of {', '.join(sorted(SORT_COLUMNS))}")
        if sort.direction == "asc":
            return column.asc(), Applicant.id.asc()
        return column.desc(), Applicant.id.desc()

    # -- hydration ---------------------------------------------------------------

    def _hydrate(self, s, rows: Sequence[Tuple[Applicant, str]]) -> List[ApplicantListItem]:
        """Attach CV files and latest screening to a page of applicants in three queries."""
        ids = [a.id for a, _ in rows]
        if not ids:
            return []

        cvs: Dict[str, List[CVFileResponse]] = defaultdict(list)
        for cv in s.scalars(select(CVFile)
                            .where(CVFile.applicant_id.in_(ids))
                            .order_by(CVFile.uploaded_date.desc(), CVFile.id.desc())):
            cvs[cv.applicant_id].append(CVFileResponse.model_validate(cv))

        latest: Dict[str, ScreeningResult] = {
            r.applicant_id: r
            for r in s.scalars(select(ScreeningResult).where(ScreeningResult.id.in_(_latest_result_ids(ids))))
        }

        totals = dict(s.execute(
            select(ScreeningResult.applicant_id, func.count(ScreeningResult.id))
            .where(ScreeningResult.applicant_id.in_(ids))
            .group_by(ScreeningResult.applicant_id)
        ).all())

        items = []
        for applicant, job_title in rows:
            result = latest.get(applicant.id)
            items.append(ApplicantListItem(
                id=applicant.id,
                first_name=applicant.first_name,
                last_name=applicant.last_name,
                email=applicant.email,
                phone_number=applicant.phone_number,
                status=applicant.status,
                applied_date=applicant.applied_date,
                last_updated=applicant.last_updated,
                job_post_id=applicant.job_post_id,
                job_title=job_title,
                cv_files=cvs.get(applicant.id, []),
                latest_screening=LatestScreening(
                    result_id=result.id,
                    overall_score=result.overall_score,
                    summary=result.summary,
                    status=result.status,
                    created_at=result.created_at,
                    completed_at=result.completed_at,
                ) if result else None,
                total_screenings=totals.get(applicant.id, 0),
            ))
        return items

    # -- operations ----------------------------------------------------------------

    def list_applicants(self, flt: Optional[ApplicantFilter], page: Optional[int], page_size: Optional[int],
                        sort: Optional[ApplicantSort], caller: Caller) -> ApplicantPage:
        flt = flt or ApplicantFilter()
        page, page_size = clamp_page(page, page_size, **self._paging)
        conds = self._conditions(flt, caller)
        order = self._order_by(sort)

        with self._session() as s:
            total = s.scalar(
                select(func.count(Applicant.id))
                .join(JobPost, JobPost.id == Applicant.job_post_id)
                .where(*conds)
            ) or 0
            rows = s.execute(
                select(Applicant, JobPost.title)
                .join(JobPost, JobPost.id == Applicant.job_post_id)
                .where(*conds)
                .order_by(*order)
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).all()
            items = self._hydrate(s, rows)

            # dashboard stats cover the caller's scope and job filter only
            stats_conds = self._scope(caller)
            if flt.job_post_id:
                stats_conds.append(Applicant.job_post_id == flt.job_post_id)
            status_counts = dict(s.execute(
                select(Applicant.status, func.count(Applicant.id))
                .join(JobPost, JobPost.id == Applicant.job_post_id)
                .where(*stats_conds)
                .group_by(Applicant.status)
            ).all())
            total_cv_files = s.scalar(
                select(func.count(CVFile.id))
                .join(Applicant, Applicant.id == CVFile.applicant_id)
                .join(JobPost, JobPost.id == Applicant.job_post_id)
                .where(*stats_conds)
            ) or 0

        logger.debug(f"Applicant page {page} (size {page_size}) -> {len(items)} of {total}")
        return ApplicantPage(
            items=items,
            page=page,
            page_size=page_size,
            total_count=total,
            total_pages=math.ceil(total / page_size) if total else 0,
            status_counts=status_counts,
            total_cv_files=total_cv_files,
        )

    def search_applicants(self, term: str, caller: Caller, limit: int = 20) -> List[ApplicantListItem]:
        """Quick search: the most recent application of each matching email address."""
        term = (term or "").strip()
        if not term:
            return []
        rn = func.row_number().over(
            partition_by=func.lower(Applicant.email),
            order_by=(Applicant.applied_date.desc(), Applicant.id.desc()),
        ).label("rn")
        ranked = (select(Applicant.id, rn)
                  .join(JobPost, JobPost.id == Applicant.job_post_id)
                  .where(*self._scope(caller), self._search(term))
                  .subquery())
        with self._session() as s:
            rows = s.execute(
                select(Applicant, JobPost.title)
                .join(JobPost, JobPost.id == Applicant.job_post_id)
                .join(ranked, ranked.c.id == Applicant.id)
                .where(ranked.c.rn == 1)
                .order_by(Applicant.applied_date.desc(), Applicant.id.desc())
                .limit(max(1, min(limit, self._paging["max_size"])))
            ).all()
            return self._hydrate(s, rows)

    def list_screened_applicants(self, caller: Caller, job_post_id: Optional[str] = None) -> List[ScreenedApplicant]:
        """Applicants with at least one screening, newest screening first."""
        totals = (select(ScreeningResult.applicant_id, func.count(ScreeningResult.id).label("total"))
                  .group_by(ScreeningResult.applicant_id)
                  .subquery())
        stmt = (
            select(Applicant, JobPost, ScreeningResult, totals.c.total)
            .join(JobPost, JobPost.id == Applicant.job_post_id)
            .join(ScreeningResult, ScreeningResult.applicant_id == Applicant.id)
            .join(totals, totals.c.applicant_id == Applicant.id)
            .where(*self._scope(caller), ScreeningResult.id.in_(_latest_result_ids(None)))
            .order_by(ScreeningResult.created_at.desc(), ScreeningResult.id.desc())
        )
        if job_post_id:
            stmt = stmt.where(Applicant.job_post_id == job_post_id)
        with self._session() as s:
            rows = s.execute(stmt).all()
        return [
            ScreenedApplicant(
                applicant_id=applicant.id,
                first_name=applicant.first_name,
                last_name=applicant.last_name,
                email=applicant.email,
                phone_number=applicant.phone_number,
                status=applicant.status,
                applied_date=applicant.applied_date,
                job_post_id=job.id,
                job_title=job.title,
                job_location=job.location,
                job_department=job.department,
                latest_score=result.overall_score,
                latest_status=result.status,
                latest_screening_date=result.created_at,
                total_screenings=total,
            )
            for applicant, job, result, total in rows
        ]

    def processing_status(self, caller: Caller, *, applicant_id: Optional[str] = None,
                          job_post_id: Optional[str] = None) -> List[ProcessingStatus]:
        """CV extraction and screening progress per applicant."""
        if bool(applicant_id) == bool(job_post_id):
            raise ValidationError("Pass exactly one of applicant_id or job_post_id")
        stmt = (select(Applicant, JobPost.title)
                .join(JobPost, JobPost.id == Applicant.job_post_id)
                .where(*self._scope(caller))
                .order_by(Applicant.applied_date.desc(), Applicant.id.desc()))

        with self._session() as s:
            if applicant_id:
                rows = s.execute(stmt.where(Applicant.id == applicant_id)).all()
                if not rows:
                    raise NotFound("applicant not found")
            else:
                job = s.get(JobPost, job_post_id)
                if not job or not caller.owns(job.user_id):
                    raise NotFound("job post not found")
                rows = s.execute(stmt.where(Applicant.job_post_id == job_post_id)).all()
            ids = [a.id for a, _ in rows]
            if not ids:
                return []

            cv_rn = func.row_number().over(
                partition_by=CVFile.applicant_id,
                order_by=(CVFile.uploaded_date.desc(), CVFile.id.desc()),
            ).label("rn")
            ranked_cvs = select(CVFile.id, cv_rn).where(CVFile.applicant_id.in_(ids)).subquery()
            latest_cv = {
                cv.applicant_id: cv
                for cv in s.scalars(select(CVFile).join(ranked_cvs, ranked_cvs.c.id == CVFile.id)
                                    .where(ranked_cvs.c.rn == 1))
            }
            latest_result = {
                r.applicant_id: r
                for r in s.scalars(select(ScreeningResult).where(ScreeningResult.id.in_(_latest_result_ids(ids))))
            }

        statuses = []
        for applicant, job_title in rows:
            cv = latest_cv.get(applicant.id)
            result = latest_result.get(applicant.id)
            cv_status = cv.status if cv else None
            screening_status = result.status if result else None
            statuses.append(ProcessingStatus(
                applicant_id=applicant.id,
                applicant_name=f"{applicant.first_name} {applicant.last_name}",
                job_post_id=applicant.job_post_id,
                job_title=job_title,
                cv_status=cv_status or NO_CV_STATUS,
                cv_progress=CV_PROGRESS.get(cv_status, 0),
                screening_status=screening_status or NOT_STARTED_STATUS,
                screening_progress=SCREENING_PROGRESS.get(screening_status, 0),
                last_updated=(result.created_at if result else None)
                or (cv.uploaded_date if cv else None)
                or applicant.applied_date,
                overall_progress=overall_progress(cv_status, screening_status),
            ))
        return statuses
