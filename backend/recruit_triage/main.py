"""FastAPI application entrypoint."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .config import Settings, configure_logging, load_settings
from .routers import workflows


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "settings", None) is None:
            app.state.settings = load_settings()
        configure_logging(app.state.settings)
        yield

    app = FastAPI(
        title="Recruitment Triage API",
        description="Triage job applications from Gmail: dedupe, classify, reply and label",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.include_router(workflows.router)

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
