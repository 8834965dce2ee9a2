"""
Location Data Collector
Main FastAPI Application
"""
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging

from locationdata.core.config import Settings, settings
from locationdata.core.reporting import LoggingErrorReporter
from locationdata.api import api_router
from locationdata.models import SqlKeyValueStore, build_engine, build_session_maker, init_db
from locationdata.services import (
    AgentSensor, IPGeolocationProvider, LocationDataCollector, StubReverseGeocoder
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

CollectorFactory = Callable[[FastAPI], Awaitable[LocationDataCollector]]


async def build_default_collector(app: FastAPI) -> LocationDataCollector:
    """Collector backed by the configured database and an agent-fed sensor"""
    engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    await init_db(engine)
    logger.info("Key-value store initialized")
    app.state.engine = engine

    return LocationDataCollector(
        store=SqlKeyValueStore(build_session_maker(engine)),
        sensor=AgentSensor(),
        ip_provider=IPGeolocationProvider(
            url=settings.IP_GEOLOCATION_URL,
            timeout=settings.IP_GEOLOCATION_TIMEOUT_SECONDS,
            accuracy_meters=settings.IP_FALLBACK_ACCURACY_METERS
        ),
        reverse_geocoder=StubReverseGeocoder(),
        reporter=LoggingErrorReporter(),
        user_agent=settings.USER_AGENT,
        ip_address=settings.CLIENT_IP_PLACEHOLDER,
        history_limit=settings.LOCATION_HISTORY_MAX_ENTRIES,
        fallback_accuracy=settings.IP_FALLBACK_ACCURACY_METERS
    )


def create_app(
    collector_factory: Optional[CollectorFactory] = None,
    config: Optional[Settings] = None
) -> FastAPI:
    config = config or settings
    collector_factory = collector_factory or build_default_collector

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        # Startup
        logger.info("Starting Location Data Collector...")
        app.state.engine = None
        collector = await collector_factory(app)
        await collector.initialize()
        app.state.collector = collector
        yield
        # Shutdown
        logger.info("Shutting down Location Data Collector...")
        await collector.close()
        if app.state.engine is not None:
            await app.state.engine.dispose()

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        description="""
        ## Location Data Collector

        Consent-driven location collection with privacy filtering.

        ### Features
        - One-shot and continuous tracking fed by a device agent
        - Privacy levels from exact coordinates down to anonymous records
        - IP-based fallback location
        - Retention-bounded location history
        - Consent audit log
        - Distance analytics
        - JSON / CSV / GPX export and JSON import
        """,
        docs_url="/api/docs" if config.DEBUG else None,
        redoc_url="/api/redoc" if config.DEBUG else None,
        openapi_url="/api/openapi.json" if config.DEBUG else None,
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors"""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": jsonable_errors(exc)}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions"""
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An internal error occurred"}
        )

    # Include API routes
    app.include_router(api_router, prefix=config.API_V1_PREFIX)

    # Health check endpoint
    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        collector = request.app.state.collector
        reporter = collector.reporter
        return {
            "status": "healthy",
            "app": config.APP_NAME,
            "version": config.APP_VERSION,
            "tracking": collector.tracking_state.value,
            "pending_writes": collector.persistence.pending,
            "errors": reporter.snapshot() if isinstance(reporter, LoggingErrorReporter) else {}
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "app": config.APP_NAME,
            "version": config.APP_VERSION,
            "docs": "/api/docs" if config.DEBUG else "Disabled in production",
            "health": "/health"
        }

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may carry exception instances that JSONResponse cannot encode
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "locationdata.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
