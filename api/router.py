from fastapi import APIRouter
from api.endpoints.job_posts import router as job_posts_router
from api.endpoints.applicants import router as applicants_router
from api.endpoints.cv_files import router as cv_files_router
from api.endpoints.screening import router as screening_router
from api.endpoints.health import router as health_router

api_router = APIRouter()
api_router.include_router(job_posts_router, tags=["job-posts"])
api_router.include_router(applicants_router, tags=["applicants"])
api_router.include_router(cv_files_router, tags=["cv-files"])
api_router.include_router(screening_router, tags=["screening"])
api_router.include_router(health_router, tags=["health"])
