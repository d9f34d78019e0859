from contextlib import asynccontextmanager

from fastapi import FastAPI

from homenotify.infrastructure.database import engine, initialize_database
from homenotify.interfaces.api.routes import register_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup and release pooled connections on shutdown."""

    initialize_database()
    yield
    engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the notifications API application."""

    app = FastAPI(title="homenotify", lifespan=lifespan)
    register_routes(app)
    return app


app = create_app()
