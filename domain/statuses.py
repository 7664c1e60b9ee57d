from enum import Enum


class JobPostStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    CLOSED = "Closed"


class ApplicantStatus(str, Enum):
    APPLIED = "Applied"
    UNDER_REVIEW = "Under Review"
    SHORTLISTED = "Shortlisted"
    REJECTED = "Rejected"
    HIRED = "Hired"


class CVFileStatus(str, Enum):
    UPLOADED = "Uploaded"
    PROCESSING = "Processing"
    PROCESSED = "Processed"
    ERROR = "Error"


class ScreeningStatus(str, Enum):
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ScreeningStatus.PROCESSING


# progress percentages shown on the processing dashboard
CV_PROGRESS = {
    CVFileStatus.UPLOADED.value: 25,
    CVFileStatus.PROCESSING.value: 50,
    CVFileStatus.PROCESSED.value: 100,
    CVFileStatus.ERROR.value: 0,
}

SCREENING_PROGRESS = {
    ScreeningStatus.PROCESSING.value: 50,
    ScreeningStatus.COMPLETED.value: 100,
    ScreeningStatus.FAILED.value: 0,
}

NO_CV_STATUS = "No CV uploaded"
NOT_STARTED_STATUS = "Not started"


def overall_progress(cv_status, screening_status) -> int:
    cv = CV_PROGRESS.get(cv_status, 0)
    if cv_status != CVFileStatus.PROCESSED.value:
        return cv
    if not screening_status:
        return 50
    return (cv + SCREENING_PROGRESS.get(screening_status, 0)) // 2
