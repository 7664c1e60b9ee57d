from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status as http_status

from api.deps import get_caller, get_services
from app.container import Services
from domain.caller import Caller
from domain.schemas import (
    ApplicantFilter,
    ApplicantListItem,
    ApplicantPage,
    ApplicantResponse,
    ApplicantSort,
    ProcessingStatus,
    SortDirection,
    UpdateApplicantRequest,
)
from domain.statuses import ApplicantStatus

router = APIRouter(prefix="/applicants")


@router.get("", response_model=ApplicantPage)
def list_applicants(job_post_id: Optional[str] = None, status: Optional[ApplicantStatus] = None,
                    search: Optional[str] = None,
                    applied_from: Optional[datetime] = None, applied_to: Optional[datetime] = None,
                    page: int = 1, page_size: Optional[int] = None,
                    sort_by: Optional[str] = None, direction: SortDirection = "desc",
                    caller: Caller = Depends(get_caller),
                    services: Services = Depends(get_services)) -> ApplicantPage:
    flt = ApplicantFilter(job_post_id=job_post_id, status=status, search_text=search,
                          applied_from=applied_from, applied_to=applied_to)
    sort = ApplicantSort(sort_by=sort_by, direction=direction)
    return services.query.list_applicants(flt, page, page_size, sort, caller)


@router.get("/search", response_model=List[ApplicantListItem])
def search_applicants(q: str = Query(..., min_length=1), limit: int = 20,
                      caller: Caller = Depends(get_caller),
                      services: Services = Depends(get_services)) -> List[ApplicantListItem]:
    return services.query.search_applicants(q, caller, limit=limit)


@router.get("/{applicant_id}", response_model=ApplicantResponse)
def get_applicant(applicant_id: str, caller: Caller = Depends(get_caller),
                  services: Services = Depends(get_services)) -> ApplicantResponse:
    return services.applicants.get(applicant_id, caller)


@router.patch("/{applicant_id}", response_model=ApplicantResponse)
def update_applicant(applicant_id: str, body: UpdateApplicantRequest, caller: Caller = Depends(get_caller),
                     services: Services = Depends(get_services)) -> ApplicantResponse:
    return services.applicants.update(applicant_id, body, caller)


@router.delete("/{applicant_id}", status_code=http_status.HTTP_204_NO_CONTENT)
def delete_applicant(applicant_id: str, caller: Caller = Depends(get_caller),
                     services: Services = Depends(get_services)) -> Response:
    services.applicants.delete(applicant_id, caller)
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)


@router.get("/{applicant_id}/processing-status", response_model=ProcessingStatus)
def applicant_processing_status(applicant_id: str, caller: Caller = Depends(get_caller),
                                services: Services = Depends(get_services)) -> ProcessingStatus:
    return services.query.processing_status(caller, applicant_id=applicant_id)[0]
