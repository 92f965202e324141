import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from starlette.middleware.cors import CORSMiddleware

from webm_dash_live.configs import Settings, settings
from webm_dash_live.live.session import LiveSession
from webm_dash_live.routes import dash_router, ingest_router, session_router
from webm_dash_live.routes.dependencies import verify_api_key

logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        session = LiveSession(app_settings)
        session.prepare()
        app.state.session = session
        logger.info(f"Serving DASH fragments from {app_settings.output_dir.resolve()}")
        try:
            yield
        finally:
            await session.stop()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = app_settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    app.include_router(ingest_router, prefix="/ingest", tags=["ingest"], dependencies=[Depends(verify_api_key)])
    app.include_router(session_router, prefix="/session", tags=["session"], dependencies=[Depends(verify_api_key)])
    # Last: its "/{filename}" route would shadow every single-segment path registered after it.
    app.include_router(dash_router, tags=["dash"])
    return app


app = create_app()


def run():
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
