from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import logging
from settings.config import settings
from settings.logging_config import configure_logging
from routes.statement_routes import router as statement_router

logger = logging.getLogger(__name__)


def get_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting Statement Extraction API")
    app = FastAPI(title="Statement Extraction API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(statement_router)
    logger.info("Routers initialized successfully")

    # Health
    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        logger.info("Health check")
        return {"status": "ok"}

    logger.info("API started")
    return app


# ASGI app instance
app = get_app()
