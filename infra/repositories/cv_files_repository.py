import uuid
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from domain.statuses import CVFileStatus
from infra.db.session import SessionLocal
from infra.db.models import CVFile


class CVFilesRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session = session_factory

    def save(self, applicant_id: str, file_name: str, storage_handle: str,
             content_type: str, file_size: int, file_extension: str) -> CVFile:
        rec = CVFile(
            id=f"cv_{uuid.uuid4().hex}",
            applicant_id=applicant_id,
            file_name=file_name,
            storage_handle=storage_handle,
            content_type=content_type,
            file_size=file_size,
            file_extension=file_extension,
            status=CVFileStatus.UPLOADED.value,
        )
        with self._session() as s:
            s.add(rec)
            s.commit()
        return rec

    def get(self, cv_file_id: str) -> Optional[CVFile]:
        with self._session() as s:
            return s.get(CVFile, cv_file_id)

    def list_for_applicant(self, applicant_id: str) -> List[CVFile]:
        with self._session() as s:
            stmt = (select(CVFile)
                    .where(CVFile.applicant_id == applicant_id)
                    .order_by(CVFile.uploaded_date.desc(), CVFile.id.desc()))
            return list(s.scalars(stmt))

    def pick_for_screening(self, applicant_id: str) -> Optional[CVFile]:
        """Newest CV already processed; else the newest one still waiting for extraction."""
        with self._session() as s:
            for status in (CVFileStatus.PROCESSED, CVFileStatus.UPLOADED):
                stmt = (select(CVFile)
                        .where(CVFile.applicant_id == applicant_id, CVFile.status == status.value)
                        .order_by(CVFile.uploaded_date.desc(), CVFile.id.desc())
                        .limit(1))
                rec = s.scalars(stmt).first()
                if rec is not None and (status is CVFileStatus.UPLOADED or rec.extracted_text):
                    return rec
        return None

    def transition(self, cv_file_id: str, expected: CVFileStatus, new: CVFileStatus, **values) -> bool:
        """Move one row between states; False if it was not in ``expected``."""
        with self._session() as s:
            res = s.execute(
                update(CVFile)
                .where(CVFile.id == cv_file_id, CVFile.status == expected.value)
                .values(status=new.value, **values)
            )
            s.commit()
            return res.rowcount == 1

    def delete(self, cv_file_id: str) -> Optional[CVFile]:
        with self._session() as s:
            rec = s.get(CVFile, cv_file_id)
            if not rec:
                return None
            s.delete(rec)
            s.commit()
            return rec
