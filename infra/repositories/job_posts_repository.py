import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import sessionmaker

from domain.patch import apply_patch
from domain.statuses import JobPostStatus
from infra.db.session import SessionLocal
from infra.db.models import Applicant, CVFile, JobPost, ScreeningResult, utcnow


class JobPostsRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session = session_factory

    def create(self, user_id: str, fields: Dict[str, Any]) -> JobPost:
        rec = JobPost(
            id=f"job_{uuid.uuid4().hex}",
            user_id=user_id,
            status=JobPostStatus.ACTIVE.value,
            posted_date=utcnow(),
            **fields,
        )
        with self._session() as s:
            s.add(rec)
            s.commit()
        return rec

    def get(self, job_post_id: str) -> Optional[JobPost]:
        with self._session() as s:
            return s.get(JobPost, job_post_id)

    def applicant_count(self, job_post_id: str) -> int:
        with self._session() as s:
            return s.scalar(
                select(func.count(Applicant.id)).where(Applicant.job_post_id == job_post_id)) or 0

    def update(self, job_post_id: str, changes: Dict[str, Any]) -> Optional[JobPost]:
        with self._session() as s:
            rec = s.get(JobPost, job_post_id, with_for_update=True)
            if not rec:
                return None
            apply_patch(rec, changes, immutable=("id", "user_id"))
            s.commit()
            return rec

    def delete(self, job_post_id: str) -> Optional[List[str]]:
        """Remove the post with everything hanging off it.

        Returns the storage handles of the removed CVs, or None if unknown.
        """
        with self._session() as s:
            rec = s.get(JobPost, job_post_id)
            if not rec:
                return None
            applicant_ids = select(Applicant.id).where(Applicant.job_post_id == job_post_id)
            handles = list(s.scalars(
                select(CVFile.storage_handle).where(CVFile.applicant_id.in_(applicant_ids))))
            s.execute(delete(ScreeningResult).where(ScreeningResult.applicant_id.in_(applicant_ids)),
                      execution_options={"synchronize_session": False})
            s.execute(delete(CVFile).where(CVFile.applicant_id.in_(applicant_ids)),
                      execution_options={"synchronize_session": False})
            s.execute(delete(Applicant).where(Applicant.job_post_id == job_post_id),
                      execution_options={"synchronize_session": False})
            s.delete(rec)
            s.commit()
            return handles
