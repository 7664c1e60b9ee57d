import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from app.settings import Settings, settings as default_settings
from app.logging import configure_logging
from app.error_handlers import attach_error_handlers
from app.container import Services, build_services
from api.router import api_router
from infra.db.session import engine as default_engine, init_db, make_session_factory

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None,
               services: Optional[Services] = None) -> FastAPI:
    settings = settings or default_settings
    engine = engine or default_engine
    services = services or build_services(settings, make_session_factory(engine))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        stale = services.orchestrator.fail_stale()
        logger.info(f"{settings.APP_NAME} started ({settings.ENV}); {stale} stale screening(s) recovered")
        sweeper = None
        if settings.SCREENING_STALE_SWEEP_SECONDS > 0:
            sweeper = asyncio.create_task(services.orchestrator.sweep_stale(settings.SCREENING_STALE_SWEEP_SECONDS))
        yield
        if sweeper is not None:
            sweeper.cancel()
            await asyncio.gather(sweeper, return_exceptions=True)
        await services.orchestrator.shutdown()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.services = services

    attach_error_handlers(app)
    app.include_router(api_router)
    return app


configure_logging()
app = create_app()
