from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, Integer, Text, DateTime, ForeignKey, Index, text
from infra.db.session import Base


def utcnow() -> datetime:
    # naive UTC; SQLite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JobPost(Base):
    __tablename__ = "job_posts"
    id = Column(String, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(200), nullable=False, default="")
    department = Column(String(100), nullable=False, default="")
    employment_type = Column(String(50), nullable=False, default="")
    experience_level = Column(String(50), nullable=False, default="")
    required_skills = Column(Text, nullable=False, default="")
    preferred_skills = Column(Text, nullable=False, default="")
    responsibilities = Column(Text, nullable=False, default="")
    benefits = Column(Text, nullable=False, default="")
    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default="Active")   # Active | Inactive | Closed
    posted_date = Column(DateTime, nullable=False, default=utcnow)
    closing_date = Column(DateTime, nullable=True)
    user_id = Column(String, nullable=False, index=True)


class Applicant(Base):
    __tablename__ = "applicants"
    id = Column(String, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(200), nullable=False, index=True)
    phone_number = Column(String(20), nullable=True)
    linkedin_profile = Column(String(200), nullable=True)
    portfolio_url = Column(String(200), nullable=True)
    cover_letter = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default="Applied")
    applied_date = Column(DateTime, nullable=False, default=utcnow)
    last_updated = Column(DateTime, nullable=True)
    job_post_id = Column(String, ForeignKey("job_posts.id"), nullable=False, index=True)


class CVFile(Base):
    __tablename__ = "cv_files"
    id = Column(String, primary_key=True)
    applicant_id = Column(String, ForeignKey("applicants.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    storage_handle = Column(String(500), nullable=False)
    content_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_extension = Column(String(50), nullable=False, default="")
    extracted_text = Column(Text, nullable=True)     # only when status == Processed
    error_message = Column(Text, nullable=True)      # only when status == Error
    uploaded_date = Column(DateTime, nullable=False, default=utcnow)
    status = Column(String(20), nullable=False, default="Uploaded")  # Uploaded | Processing | Processed | Error


class ScreeningResult(Base):
    __tablename__ = "screening_results"
    __table_args__ = (
        # at most one in-flight attempt per applicant
        Index(
            "uq_screening_results_one_processing",
            "applicant_id",
            unique=True,
            sqlite_where=text("status = 'Processing'"),
            postgresql_where=text("status = 'Processing'"),
        ),
        Index("ix_screening_results_applicant_created", "applicant_id", "created_at"),
    )
    id = Column(String, primary_key=True)
    applicant_id = Column(String, ForeignKey("applicants.id"), nullable=False)
    job_post_id = Column(String, ForeignKey("job_posts.id"), nullable=False, index=True)
    overall_score = Column(Integer, nullable=True)
    summary = Column(Text, nullable=True)
    strengths = Column(Text, nullable=True)    # JSON array, see domain.codecs
    weaknesses = Column(Text, nullable=True)   # JSON array, see domain.codecs
    detailed_analysis = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="Processing")  # Processing | Completed | Failed
    created_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
