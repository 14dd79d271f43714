import inspect
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from dal.session_dal import SessionDAL
from routes.analysis_route import router as analysis_router
from routes.analysis_ws import router as analysis_ws_router
from services.analysis.session_store import AnalysisSessionStore
from services.openai.pair_analyzer import ImagePairAnalyzer
from services.openai.report_generator import EnergyReportGenerator
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import AnalysisSettings

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def build_session_store(client, settings: AnalysisSettings, dal: Optional[SessionDAL] = None) -> AnalysisSessionStore:
    """Wire the step executors and persistence into a session store."""
    return AnalysisSessionStore(
        pair_analyzer=ImagePairAnalyzer(client, model=settings.analysis_model),
        report_generator=EnergyReportGenerator(client, model=settings.report_model),
        settings=settings,
        dal=dal,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the analysis settings (from the environment)
      - the OpenAI async client
      - the session snapshot database, when DATABASE_DIR is set
      - the session store
    and attach them to `app.state`.
    """
    settings = AnalysisSettings.from_env()
    app.state.settings = settings

    openai_api_key = os.getenv("OPENAI_API_KEY")
    if not openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")

    try:
        openai_client = AsyncOpenAI()
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc

    app.state.openai_client = openai_client

    dal = None
    if settings.database_dir is not None:
        db_initializer = AsyncDatabaseInitializer(settings.database_dir)
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer
        dal = SessionDAL(db_initializer)
    else:
        logging.warning("DATABASE_DIR is not set; analysis sessions are kept in memory only")

    app.state.session_store = build_session_store(openai_client, settings, dal)

    try:
        yield
    finally:
        await app.state.session_store.shutdown()

        # Gracefully close the OpenAI client if it exposes a close/aclose method.
        client = getattr(app.state, "openai_client", None)
        if client is not None:
            aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
            if aclose is not None:
                try:
                    if inspect.iscoroutinefunction(aclose):
                        await aclose()
                    else:
                        result = aclose()
                        if inspect.isawaitable(result):
                            await result
                except Exception:
                    # Ignore shutdown errors to avoid masking more important issues.
                    pass


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the session store and OpenAI client presence.
        """
        has_store = getattr(request.app.state, "session_store", None) is not None
        has_openai = getattr(request.app.state, "openai_client", None) is not None
        has_db = hasattr(request.app.state, "db_initializer")
        return {"ok": True, "session_store": has_store, "openai_available": has_openai, "db_initialized": has_db}

    # Register application routers
    app.include_router(analysis_router)
    app.include_router(analysis_ws_router)

    return app


app = create_app()
