from typing import List

from fastapi import APIRouter, Depends, File, Response, UploadFile, status as http_status

from api.deps import get_caller, get_services
from app.container import Services
from domain.caller import Caller
from domain.schemas import CVFileResponse, ExtractedTextResponse, FileCheckResponse

router = APIRouter()


@router.post("/applicants/{applicant_id}/cv-files", response_model=CVFileResponse,
             status_code=http_status.HTTP_201_CREATED)
async def upload_cv(applicant_id: str, file: UploadFile = File(...),
                    caller: Caller = Depends(get_caller),
                    services: Services = Depends(get_services)) -> CVFileResponse:
    if file.size is not None:
        services.cv_files.precheck(applicant_id, file.filename or "", file.content_type, file.size, caller)
    content = await file.read()
    return services.cv_files.upload(applicant_id, file.filename or "", file.content_type, content, caller)


@router.get("/applicants/{applicant_id}/cv-files", response_model=List[CVFileResponse])
def list_cv_files(applicant_id: str, caller: Caller = Depends(get_caller),
                  services: Services = Depends(get_services)) -> List[CVFileResponse]:
    return services.cv_files.list_for_applicant(applicant_id, caller)


@router.post("/cv-files/validate", response_model=FileCheckResponse)
async def validate_cv(file: UploadFile = File(...), caller: Caller = Depends(get_caller),
                      services: Services = Depends(get_services)) -> FileCheckResponse:
    size = file.size if file.size is not None else len(await file.read())
    reason = services.cv_files.rejection_reason(file.filename or "", file.content_type, size)
    return FileCheckResponse(valid=reason is None, reason=reason)


@router.get("/cv-files/{cv_file_id}/download")
def download_cv(cv_file_id: str, caller: Caller = Depends(get_caller),
                services: Services = Depends(get_services)) -> Response:
    meta, data = services.cv_files.download(cv_file_id, caller)
    return Response(
        content=data,
        media_type=meta.content_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{meta.file_name}"'},
    )


@router.post("/cv-files/{cv_file_id}/extract", response_model=ExtractedTextResponse)
def extract_cv(cv_file_id: str, caller: Caller = Depends(get_caller),
               services: Services = Depends(get_services)) -> ExtractedTextResponse:
    text = services.cv_files.extract_for_caller(cv_file_id, caller)
    return ExtractedTextResponse(cv_file_id=cv_file_id, status="Processed", extracted_text=text)


@router.delete("/cv-files/{cv_file_id}", status_code=http_status.HTTP_204_NO_CONTENT)
def delete_cv(cv_file_id: str, caller: Caller = Depends(get_caller),
              services: Services = Depends(get_services)) -> Response:
    services.cv_files.delete(cv_file_id, caller)
    return Response(status_code=http_status.HTTP_204_NO_CONTENT)
