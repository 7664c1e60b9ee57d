from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api.deps import get_services
from app.container import Services

router = APIRouter()


@router.get("/health")
def health(services: Services = Depends(get_services)):
    try:
        with services.session_factory() as s:
            s.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return {"status": "ok", "database": "ok"}
