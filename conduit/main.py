import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from conduit.cache import cache
from conduit.config import settings
from conduit.database import check_connection, create_engine, create_session_factory
from conduit.errors import install_exception_handlers
from conduit.logging_config import configure_logging
from conduit.middleware import AccessLogMiddleware
from conduit.routers import articles, profiles, tags, users
from conduit.tokens import TokenService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: any ConfigurationFatal here aborts the process.
    app.state.token_service = TokenService(settings.JWT_SECRET)
    engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    await check_connection(engine)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    await cache.connect(settings.REDIS_URL)
    logger.info("Conduit API started (env=%s)", settings.APP_ENV)
    yield
    # Shutdown
    await cache.disconnect()
    await engine.dispose()
    logger.info("Conduit API stopped")


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Conduit API",
        description="Social blogging backend: users, articles, follows and favorites",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    app.include_router(users.router)
    app.include_router(profiles.router)
    app.include_router(articles.router)
    app.include_router(tags.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": "1.0.0"}

    return app


app = create_app()
