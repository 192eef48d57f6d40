from __future__ import annotations  # FastAPI server exposing the timed interview engine

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.deps import InterviewServices
from api.routes import router
from config import COMPLETION_KEY, bind_model, is_bound, route_from_settings
from llm_gateway import Completer, make_completer
from storage import migrate

logger = logging.getLogger(__name__)


def create_app(*, complete: Optional[Completer] = None) -> FastAPI:
    """Build the API app; the lifespan migrates the DB and restores saved sessions."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        migrate()
        if complete is None and not is_bound(COMPLETION_KEY):
            bind_model(COMPLETION_KEY, make_completer(route_from_settings()))
        services = InterviewServices(complete=complete)
        services.restore()
        app.state.services = services
        try:
            yield
        finally:
            services.close()

    application = FastAPI(title="Timed Interview API", lifespan=lifespan)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(router)
    return application


app = create_app()
