from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status as http_status

from api.deps import get_caller, get_services
from app.container import Services
from domain.caller import Caller
from domain.schemas import (
    BatchAccepted,
    ScreenedApplicant,
    ScreeningBatchRequest,
    ScreeningResultResponse,
    StatusOverrideRequest,
)

router = APIRouter()


@router.post("/applicants/{applicant_id}/screenings", response_model=ScreeningResultResponse)
async def screen_applicant(applicant_id: str, caller: Caller = Depends(get_caller),
                           services: Services = Depends(get_services)) -> ScreeningResultResponse:
    return await services.orchestrator.screen_applicant(applicant_id, caller)


@router.get("/applicants/{applicant_id}/screenings", response_model=List[ScreeningResultResponse])
def list_applicant_screenings(applicant_id: str, caller: Caller = Depends(get_caller),
                              services: Services = Depends(get_services)) -> List[ScreeningResultResponse]:
    return services.orchestrator.get_results_for_applicant(applicant_id, caller)


@router.post("/job-posts/{job_post_id}/screenings", response_model=BatchAccepted,
             status_code=http_status.HTTP_202_ACCEPTED)
async def start_batch(job_post_id: str, body: ScreeningBatchRequest, wait: bool = False,
                      caller: Caller = Depends(get_caller),
                      services: Services = Depends(get_services)) -> BatchAccepted:
    accepted = await services.orchestrator.start_batch(body.applicant_ids, job_post_id, caller, wait=wait)
    return BatchAccepted(accepted=accepted, job_post_id=job_post_id,
                         applicant_count=len(set(body.applicant_ids)))


@router.get("/screened-applicants", response_model=List[ScreenedApplicant])
def screened_applicants(job_post_id: Optional[str] = None, caller: Caller = Depends(get_caller),
                        services: Services = Depends(get_services)) -> List[ScreenedApplicant]:
    return services.query.list_screened_applicants(caller, job_post_id=job_post_id)


@router.get("/screenings/{result_id}", response_model=ScreeningResultResponse)
def get_screening(result_id: str, caller: Caller = Depends(get_caller),
                  services: Services = Depends(get_services)) -> ScreeningResultResponse:
    return services.orchestrator.get_result(result_id, caller)


@router.put("/screenings/{result_id}/status", response_model=ScreeningResultResponse)
def override_screening_status(result_id: str, body: StatusOverrideRequest,
                              caller: Caller = Depends(get_caller),
                              services: Services = Depends(get_services)) -> ScreeningResultResponse:
    return services.orchestrator.override_status(
        result_id, body.status, caller, error_message=body.error_message, verdict=body.verdict)


@router.delete("/screenings/{result_id}", status_code=http_status.HTTP_204_NO_CONTENT)
def delete_screening(result_id: str, caller: Caller = Depends(get_caller),
                     services: Services = Depends(get_services)) -> Response:
    services.orchestrator.delete_result(result_id, caller)
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)
