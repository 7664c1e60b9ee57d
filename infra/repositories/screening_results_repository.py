import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from domain.codecs import encode_string_list
from domain.errors import AlreadyInProgress, InvalidTransition, NotFound
from domain.schemas import ScoringVerdict
from domain.statuses import ScreeningStatus
from infra.db.session import SessionLocal
from infra.db.models import ScreeningResult, utcnow


class ScreeningResultsRepository:
    """Result store: one row per screening attempt.

    Rows are created in Processing and leave it exactly once, through a
    conditional UPDATE so concurrent writers cannot both finish the same row.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session = session_factory

    def create_processing(self, applicant_id: str, job_post_id: str) -> ScreeningResult:
        rec = ScreeningResult(
            id=f"scr_{uuid.uuid4().hex}",
            applicant_id=applicant_id,
            job_post_id=job_post_id,
            status=ScreeningStatus.PROCESSING.value,
            strengths="[]",
            weaknesses="[]",
            created_at=utcnow(),
        )
        with self._session() as s:
            in_flight = s.scalars(
                select(ScreeningResult.id).where(
                    ScreeningResult.applicant_id == applicant_id,
                    ScreeningResult.status == ScreeningStatus.PROCESSING.value,
                ).limit(1)
            ).first()
            if in_flight:
                raise AlreadyInProgress(
                    f"Applicant {applicant_id} already has a screening in progress ({in_flight})")
            s.add(rec)
            try:
                s.commit()
            except IntegrityError as exc:
                # lost the race against a concurrent insert
                s.rollback()
                raise AlreadyInProgress(
                    f"Applicant {applicant_id} already has a screening in progress") from exc
        return rec

    def _finish(self, result_id: str, **values) -> ScreeningResult:
        with self._session() as s:
            res = s.execute(
                update(ScreeningResult)
                .where(ScreeningResult.id == result_id,
                       ScreeningResult.status == ScreeningStatus.PROCESSING.value)
                .values(**values)
            )
            s.commit()
            if res.rowcount != 1:
                current = s.get(ScreeningResult, result_id)
                if current is None:
                    raise NotFound("screening result not found")
                raise InvalidTransition(
                    f"Screening result {result_id} is {current.status}, not Processing")
            return s.get(ScreeningResult, result_id, populate_existing=True)

    def complete(self, result_id: str, verdict: ScoringVerdict) -> ScreeningResult:
        return self._finish(
            result_id,
            status=ScreeningStatus.COMPLETED.value,
            overall_score=verdict.overall_score,
            summary=verdict.summary,
            strengths=encode_string_list(verdict.strengths),
            weaknesses=encode_string_list(verdict.weaknesses),
            detailed_analysis=verdict.detailed_analysis,
            completed_at=utcnow(),
            error_message=None,
        )

    def fail(self, result_id: str, error_message: str) -> ScreeningResult:
        return self._finish(
            result_id,
            status=ScreeningStatus.FAILED.value,
            error_message=error_message or "screening failed",
            completed_at=utcnow(),
        )

    def get(self, result_id: str) -> Optional[ScreeningResult]:
        with self._session() as s:
            return s.get(ScreeningResult, result_id)

    def list_for_applicant(self, applicant_id: str) -> List[ScreeningResult]:
        with self._session() as s:
            stmt = (select(ScreeningResult)
                    .where(ScreeningResult.applicant_id == applicant_id)
                    .order_by(ScreeningResult.created_at.desc(), ScreeningResult.id.desc()))
            return list(s.scalars(stmt))

    def list_stale(self, older_than: datetime) -> List[str]:
        with self._session() as s:
            stmt = select(ScreeningResult.id).where(
                ScreeningResult.status == ScreeningStatus.PROCESSING.value,
                ScreeningResult.created_at < older_than,
            )
            return list(s.scalars(stmt))

    def delete(self, result_id: str) -> bool:
        with self._session() as s:
            rec = s.get(ScreeningResult, result_id)
            if not rec:
                return False
            s.delete(rec)
            s.commit()
            return True
