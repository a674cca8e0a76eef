"""
Main FastAPI application
Trivia question-supply and session-state engine
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from functools import partial
from typing import Optional
import logging
import time

from trivia_engine.config import Settings, get_settings
from trivia_engine.database import create_engine_for, create_session_factory, init_db
from trivia_engine.errors import (
    ChatTransportError,
    ContentGenerationError,
    PackFormatError,
    PersistenceError,
    RateLimitError,
)
from trivia_engine.api import library, rounds, sessions
from trivia_engine.services.chat_client import ChatClient, create_chat_client
from trivia_engine.services.fill_queue import FillQueue
from trivia_engine.services.library_mirror import LibraryMirror
from trivia_engine.services.library_service import LibraryService
from trivia_engine.services.question_bank import QuestionBankService
from trivia_engine.services.trivia_generator import TriviaGenerator
from trivia_engine.utils.cache import create_key_value_store
from trivia_engine.utils.rate_limiter import MinIntervalRateLimiter

logger = logging.getLogger(__name__)


def build_bank(settings: Settings, chat_client: Optional[ChatClient]) -> QuestionBankService:
    """A fresh question bank; every game session gets its own"""
    bank = QuestionBankService(
        chat_client,
        models=settings.BANK_MODELS,
        refill_size=settings.BANK_REFILL_SIZE,
        fail_threshold=settings.BANK_FAIL_THRESHOLD,
        cooldown_seconds=settings.BANK_COOLDOWN_SECONDS,
        retry_attempts=settings.HTTP_RETRY_ATTEMPTS,
        retry_base_delay=settings.HTTP_RETRY_BASE_DELAY_SECONDS,
    )
    bank.subscribe(lambda event: logger.info(
        f"Refill {event.phase} for {event.category}: {event.detail}"
    ))
    return bank


def build_services(app: FastAPI, settings: Settings) -> None:
    """Construct the shared services once and hang them on app.state"""
    engine = create_engine_for(settings.DATABASE_URL)
    init_db(engine)
    kv_store = create_key_value_store(settings.REDIS_URL)
    chat_client = create_chat_client(settings)

    generator = TriviaGenerator(
        chat_client,
        kv_store,
        model=settings.TRIVIA_MODEL,
        rate_limiter=MinIntervalRateLimiter(settings.GENERATION_MIN_INTERVAL_SECONDS),
        max_attempts=settings.GENERATION_MAX_ATTEMPTS,
        max_content_retries=settings.GENERATION_MAX_CONTENT_RETRIES,
        cache_ttl=settings.TRIVIA_CACHE_TTL,
    )
    library_service = LibraryService()
    mirror = LibraryMirror(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    if settings.mirror_enabled:
        logger.info(f"Library mirror enabled at {settings.SUPABASE_URL}")
    else:
        logger.info("Library mirror disabled, running local-only")

    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.kv_store = kv_store
    app.state.chat_client = chat_client
    app.state.generator = generator
    app.state.bank_factory = partial(build_bank, settings, chat_client)
    app.state.library = library_service
    app.state.mirror = mirror
    app.state.pack_delay = settings.PACK_DELAY_SECONDS
    app.state.fill_queue = FillQueue(
        generator,
        library_service,
        mirror,
        default_delay=settings.FILL_DELAY_SECONDS,
    )
    app.state.sessions = {}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Trivia question supply, session state and scoring",
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing"""
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Duration: {duration:.3f}s"
        )
        return response

    @app.exception_handler(RateLimitError)
    async def rate_limit_handler(request: Request, exc: RateLimitError):
        return JSONResponse(
            status_code=429,
            content={
                "error": "rate_limit_exceeded",
                "message": str(exc),
                "retry_after": round(exc.retry_after, 3)
            },
            headers={"Retry-After": str(max(1, round(exc.retry_after)))}
        )

    @app.exception_handler(ContentGenerationError)
    async def generation_error_handler(request: Request, exc: ContentGenerationError):
        logger.error(f"Generation failed: {str(exc)}")
        return JSONResponse(
            status_code=502,
            content={"error": "generation_failed", "message": str(exc)}
        )

    @app.exception_handler(ChatTransportError)
    async def transport_error_handler(request: Request, exc: ChatTransportError):
        logger.error(f"Generation backend unavailable: {str(exc)}")
        return JSONResponse(
            status_code=502,
            content={"error": "backend_unavailable", "message": str(exc), "status_code": exc.status_code}
        )

    @app.exception_handler(PackFormatError)
    async def pack_error_handler(request: Request, exc: PackFormatError):
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_pack", "message": str(exc)}
        )

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error(f"Persistence failure: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content={"error": "persistence_error", "message": str(exc)}
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Format HTTP exceptions consistently"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "http_error",
                "message": exc.detail,
                "status_code": exc.status_code
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors gracefully"""
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "detail": str(exc) if settings.DEBUG else None
            }
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring"""
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "generation_enabled": app.state.chat_client is not None,
            "mirror_enabled": settings.mirror_enabled,
            "timestamp": time.time()
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "message": "Trivia Engine API",
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health"
        }

    app.include_router(sessions.router)
    app.include_router(library.router)
    app.include_router(rounds.router)

    @app.on_event("startup")
    async def startup_event():
        """Initialize database and services on startup"""
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        try:
            build_services(app, settings)
        except Exception as e:
            logger.error(f"Failed to initialize services: {str(e)}")
            raise
        logger.info("Application startup complete")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown"""
        logger.info("Shutting down application")
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            engine.dispose()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "trivia_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().DEBUG
    )
