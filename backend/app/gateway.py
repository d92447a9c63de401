from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from entain_core import RegistrationError
from entain_core.config import Settings
from entain_core.descriptors import RACING, SPORTS
from entain_core.gateway import ClientFactory, ServeMux, register_handler_from_endpoint

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    app.state.mux.close()


def build_gateway(settings: Optional[Settings] = None, client_factory: Optional[ClientFactory] = None) -> FastAPI:
    """Assemble the gateway app with every backend registered.

    A failed registration closes the channels opened so far and re-raises,
    so the gateway either serves every backend or does not start.
    """

    settings = settings or Settings.from_env()

    app = FastAPI(title="Racing & Sports API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    mux = ServeMux(app, timeout=settings.gateway_timeout, client_factory=client_factory)
    app.state.mux = mux

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    backends = (
        (RACING, settings.racing_endpoint),
        (SPORTS, settings.sports_endpoint),
    )
    try:
        for descriptor, endpoint in backends:
            register_handler_from_endpoint(mux, descriptor, endpoint)
    except RegistrationError:
        mux.close()
        raise

    logger.info("API gateway ready for %s", ", ".join(sorted(mux.channels)))
    return app


def create_app() -> FastAPI:
    return build_gateway()
