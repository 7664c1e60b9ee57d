from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from domain.statuses import ApplicantStatus, JobPostStatus, ScreeningStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def _ensure_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(item) for item in value if item is not None]
    raise ValueError("must be a string or list of strings")


class ScoringVerdict(BaseModel):
    """What the external scorer returns for one CV against one job."""
    model_config = ConfigDict(populate_by_name=True)

    overall_score: int = Field(..., ge=0, le=100,
                               validation_alias=AliasChoices("overall_score", "OverallScore", "score"))
    summary: str = Field(...,
                         validation_alias=AliasChoices("summary", "Summary"))
    strengths: List[str] = Field(default_factory=list,
                                 validation_alias=AliasChoices("strengths", "Strengths"))
    weaknesses: List[str] = Field(default_factory=list,
                                  validation_alias=AliasChoices("weaknesses", "Weaknesses"))
    detailed_analysis: str = Field(...,
                                   validation_alias=AliasChoices("detailed_analysis", "DetailedAnalysis", "analysis"))

    @field_validator("overall_score", mode="before")
    @classmethod
    def _round_score(cls, value):
        if isinstance(value, float):
            return int(round(value))
        if isinstance(value, str) and value.strip().replace(".", "", 1).isdigit():
            return int(round(float(value)))
        return value

    @field_validator("strengths", "weaknesses", mode="before")
    @classmethod
    def _lists(cls, value):
        return _ensure_list(value)

    @field_validator("summary", "detailed_analysis")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


# ---- job posts -------------------------------------------------------------

class CreateJobPostRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    location: str = Field("", max_length=200)
    department: str = Field("", max_length=100)
    employment_type: str = Field("", max_length=50)
    experience_level: str = Field("", max_length=50)
    required_skills: str = ""
    preferred_skills: str = ""
    responsibilities: str = ""
    benefits: str = ""
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    closing_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _salary_band(self):
        if self.salary_min is not None and self.salary_max is not None and self.salary_min > self.salary_max:
            raise ValueError("salary_min must not exceed salary_max")
        return self


class UpdateJobPostRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, max_length=200)
    department: Optional[str] = Field(None, max_length=100)
    employment_type: Optional[str] = Field(None, max_length=50)
    experience_level: Optional[str] = Field(None, max_length=50)
    required_skills: Optional[str] = None
    preferred_skills: Optional[str] = None
    responsibilities: Optional[str] = None
    benefits: Optional[str] = None
    salary_min: Optional[float] = Field(None, ge=0)
    salary_max: Optional[float] = Field(None, ge=0)
    status: Optional[JobPostStatus] = None
    closing_date: Optional[datetime] = None

    @field_validator("title", "description", "status", mode="before")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class JobPostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    location: str
    department: str
    employment_type: str
    experience_level: str
    required_skills: str
    preferred_skills: str
    responsibilities: str
    benefits: str
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    status: str
    posted_date: datetime
    closing_date: Optional[datetime] = None
    user_id: str
    applicant_count: int = 0


class JobPostListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    location: str
    department: str
    employment_type: str
    experience_level: str
    status: str
    posted_date: datetime
    applicant_count: int = 0


# ---- applicants ------------------------------------------------------------

class CreateApplicantRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=200, pattern=EMAIL_PATTERN)
    phone_number: Optional[str] = Field(None, max_length=20)
    linkedin_profile: Optional[str] = Field(None, max_length=200)
    portfolio_url: Optional[str] = Field(None, max_length=200)
    cover_letter: Optional[str] = Field(None, max_length=1000)


class UpdateApplicantRequest(BaseModel):
    """Sparse update; job_post_id is deliberately absent (immutable)."""
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=200, pattern=EMAIL_PATTERN)
    phone_number: Optional[str] = Field(None, max_length=20)
    linkedin_profile: Optional[str] = Field(None, max_length=200)
    portfolio_url: Optional[str] = Field(None, max_length=200)
    cover_letter: Optional[str] = Field(None, max_length=1000)
    status: Optional[ApplicantStatus] = None

    @field_validator("first_name", "last_name", "email", "status", mode="before")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class CVFileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    applicant_id: str
    file_name: str
    content_type: str
    file_size: int
    file_extension: str
    uploaded_date: datetime
    status: str
    error_message: Optional[str] = None


class ScreeningResultResponse(BaseModel):
    id: str
    applicant_id: str
    job_post_id: str
    overall_score: Optional[int] = None
    summary: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    detailed_analysis: Optional[str] = None
    status: ScreeningStatus
    created_at: datetime
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class LatestScreening(BaseModel):
    result_id: str
    overall_score: Optional[int] = None
    summary: Optional[str] = None
    status: ScreeningStatus
    created_at: datetime
    completed_at: Optional[datetime] = None


class ApplicantResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    linkedin_profile: Optional[str] = None
    portfolio_url: Optional[str] = None
    cover_letter: Optional[str] = None
    status: str
    applied_date: datetime
    last_updated: Optional[datetime] = None
    job_post_id: str
    job_title: str = ""
    cv_files: List[CVFileResponse] = Field(default_factory=list)
    screening_results: List[ScreeningResultResponse] = Field(default_factory=list)


class ApplicantListItem(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    status: str
    applied_date: datetime
    last_updated: Optional[datetime] = None
    job_post_id: str
    job_title: str = ""
    cv_files: List[CVFileResponse] = Field(default_factory=list)
    latest_screening: Optional[LatestScreening] = None
    total_screenings: int = 0


# ---- paging ----------------------------------------------------------------

SortDirection = Literal["asc", "desc"]


class ApplicantFilter(BaseModel):
    job_post_id: Optional[str] = None
    status: Optional[ApplicantStatus] = None
    search_text: Optional[str] = None
    applied_from: Optional[datetime] = None
    applied_to: Optional[datetime] = None


class ApplicantSort(BaseModel):
    sort_by: Optional[str] = None
    direction: SortDirection = "desc"


class PageInfo(BaseModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int

    @computed_field
    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    @computed_field
    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages


class ApplicantPage(PageInfo):
    items: List[ApplicantListItem]
    status_counts: Dict[str, int] = Field(default_factory=dict)
    total_cv_files: int = 0


class JobPostFilter(BaseModel):
    status: Optional[JobPostStatus] = None
    department: Optional[str] = None
    location: Optional[str] = None
    employment_type: Optional[str] = None
    experience_level: Optional[str] = None
    search_text: Optional[str] = None


class JobPostPage(PageInfo):
    items: List[JobPostListItem]
    active_job_posts: int = 0
    inactive_job_posts: int = 0
    total_applicants: int = 0


# ---- screening -------------------------------------------------------------

class ScreeningBatchRequest(BaseModel):
    applicant_ids: List[str] = Field(..., min_length=1)


class StatusOverrideRequest(BaseModel):
    status: Literal["Completed", "Failed"]
    error_message: Optional[str] = None
    verdict: Optional[ScoringVerdict] = None


class ScreenedApplicant(BaseModel):
    applicant_id: str
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    status: str
    applied_date: datetime
    job_post_id: str
    job_title: str
    job_location: str
    job_department: str
    latest_score: Optional[int] = None
    latest_status: ScreeningStatus
    latest_screening_date: datetime
    total_screenings: int


class ProcessingStatus(BaseModel):
    applicant_id: str
    applicant_name: str
    job_post_id: str
    job_title: str
    cv_status: str
    cv_progress: int
    screening_status: str
    screening_progress: int
    last_updated: datetime
    overall_progress: int


class BatchAccepted(BaseModel):
    accepted: bool
    job_post_id: str
    applicant_count: int


# ---- cv files --------------------------------------------------------------

class FileCheckResponse(BaseModel):
    valid: bool
    reason: Optional[str] = None


class ExtractedTextResponse(BaseModel):
    cv_file_id: str
    status: str
    extracted_text: str
