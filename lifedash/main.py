import logging
from typing import Dict, Optional

import requests
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lifedash.api import router as api_router
from lifedash.auth import router as auth_router
from lifedash.config import Settings
from lifedash.errors import register_error_handlers
from lifedash.logging_config import configure_logging
from lifedash.sessions import TokenSession, build_sessions


logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    sessions: Optional[Dict[str, TokenSession]] = None,
    http: Optional[requests.Session] = None,
) -> FastAPI:
    """Build the API with its own token sessions.

    ``sessions`` and ``http`` may be injected (tests pass fakes); by default every
    app gets fresh, unauthenticated sessions and a shared ``requests.Session``.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="Life Dashboard API", version="0.1.0")
    app.state.settings = settings
    app.state.http = http if http is not None else requests.Session()
    app.state.sessions = sessions if sessions is not None else build_sessions(settings, app.state.http)

    # Allow the configured frontend origin; any origin when none is set
    allowed_origins = [settings.frontend_url] if settings.frontend_url else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(auth_router)
    app.include_router(api_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    settings = app.state.settings
    logger.info("Backend server running on http://localhost:%s", settings.port)
    logger.info("To connect your accounts:")
    for provider in app.state.sessions:
        logger.info("- %s: http://localhost:%s/auth/%s", provider.capitalize(), settings.port, provider)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
