from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status as http_status

from api.deps import get_caller, get_services
from app.container import Services
from domain.caller import Caller
from domain.schemas import (
    ApplicantResponse,
    CreateApplicantRequest,
    CreateJobPostRequest,
    JobPostFilter,
    JobPostPage,
    JobPostResponse,
    ProcessingStatus,
    SortDirection,
    UpdateJobPostRequest,
)
from domain.statuses import JobPostStatus

router = APIRouter(prefix="/job-posts")


@router.post("", response_model=JobPostResponse, status_code=http_status.HTTP_201_CREATED)
def create_job_post(body: CreateJobPostRequest, caller: Caller = Depends(get_caller),
                    services: Services = Depends(get_services)) -> JobPostResponse:
    return services.job_posts.create(body, caller)


@router.get("", response_model=JobPostPage)
def list_job_posts(page: int = 1, page_size: Optional[int] = None,
                   status: Optional[JobPostStatus] = None,
                   department: Optional[str] = None, location: Optional[str] = None,
                   employment_type: Optional[str] = None, experience_level: Optional[str] = None,
                   search: Optional[str] = None, sort_by: Optional[str] = None,
                   direction: SortDirection = "desc",
                   caller: Caller = Depends(get_caller),
                   services: Services = Depends(get_services)) -> JobPostPage:
    flt = JobPostFilter(status=status, department=department, location=location,
                        employment_type=employment_type, experience_level=experience_level,
                        search_text=search)
    return services.job_posts.list(flt, page, page_size, caller, sort_by=sort_by, direction=direction)


@router.get("/{job_post_id}", response_model=JobPostResponse)
def get_job_post(job_post_id: str, caller: Caller = Depends(get_caller),
                 services: Services = Depends(get_services)) -> JobPostResponse:
    return services.job_posts.get(job_post_id, caller)


@router.patch("/{job_post_id}", response_model=JobPostResponse)
def update_job_post(job_post_id: str, body: UpdateJobPostRequest, caller: Caller = Depends(get_caller),
                    services: Services = Depends(get_services)) -> JobPostResponse:
    return services.job_posts.update(job_post_id, body, caller)


@router.delete("/{job_post_id}", status_code=http_status.HTTP_204_NO_CONTENT)
def delete_job_post(job_post_id: str, caller: Caller = Depends(get_caller),
                    services: Services = Depends(get_services)) -> Response:
    services.job_posts.delete(job_post_id, caller)
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@router.post("/{job_post_id}/applicants", response_model=ApplicantResponse,
             status_code=http_status.HTTP_201_CREATED)
def create_applicant(job_post_id: str, body: CreateApplicantRequest, caller: Caller = Depends(get_caller),
                     services: Services = Depends(get_services)) -> ApplicantResponse:
    return services.applicants.create(job_post_id, body, caller)


@router.get("/{job_post_id}/processing-status", response_model=List[ProcessingStatus])
def job_processing_status(job_post_id: str, caller: Caller = Depends(get_caller),
                          services: Services = Depends(get_services)) -> List[ProcessingStatus]:
    return services.query.processing_status(caller, job_post_id=job_post_id)
