import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import sessionmaker

from domain.patch import apply_patch
from domain.statuses import ApplicantStatus
from infra.db.session import SessionLocal
from infra.db.models import Applicant, CVFile, ScreeningResult, utcnow


class ApplicantsRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session = session_factory

    def create(self, job_post_id: str, fields: Dict[str, Any]) -> Applicant:
        rec = Applicant(
            id=f"apl_{uuid.uuid4().hex}",
            job_post_id=job_post_id,
            status=ApplicantStatus.APPLIED.value,
            applied_date=utcnow(),
            **fields,
        )
        with self._session() as s:
            s.add(rec)
            s.commit()
        return rec

    def get(self, applicant_id: str) -> Optional[Applicant]:
        with self._session() as s:
            return s.get(Applicant, applicant_id)

    def ids_in_job(self, applicant_ids: Sequence[str], job_post_id: str) -> List[str]:
        with self._session() as s:
            stmt = select(Applicant.id).where(
                Applicant.id.in_(list(applicant_ids)),
                Applicant.job_post_id == job_post_id,
            )
            return list(s.scalars(stmt))

    def update(self, applicant_id: str, changes: Dict[str, Any]) -> Optional[Applicant]:
        with self._session() as s:
            rec = s.get(Applicant, applicant_id, with_for_update=True)
            if not rec:
                return None
            apply_patch(rec, changes, immutable=("id", "job_post_id"))
            rec.last_updated = utcnow()
            s.commit()
            return rec

    def promote_after_screening(self, applicant_id: str) -> bool:
        """Applied -> Under Review once a screening completes; later stages are left alone."""
        with self._session() as s:
            res = s.execute(
                update(Applicant)
                .where(Applicant.id == applicant_id,
                       Applicant.status == ApplicantStatus.APPLIED.value)
                .values(status=ApplicantStatus.UNDER_REVIEW.value, last_updated=utcnow())
            )
            s.commit()
            return res.rowcount == 1

    def delete(self, applicant_id: str) -> Optional[List[str]]:
        """Remove the applicant with its CV rows and results.

        Returns the storage handles of the removed CVs, or None if unknown.
        """
        with self._session() as s:
            rec = s.get(Applicant, applicant_id)
            if not rec:
                return None
            handles = list(s.scalars(
                select(CVFile.storage_handle).where(CVFile.applicant_id == applicant_id)))
            s.execute(delete(ScreeningResult).where(ScreeningResult.applicant_id == applicant_id),
                      execution_options={"synchronize_session": False})
            s.execute(delete(CVFile).where(CVFile.applicant_id == applicant_id),
                      execution_options={"synchronize_session": False})
            s.delete(rec)
            s.commit()
            return handles
