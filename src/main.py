import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from src.config import settings
from src.database import Base, engine
from src.exceptions import register_exception_handlers
from src.logging_config import configure_logging
from src.auth import router as auth_router
from src.events import router as events_router
from src.bookings import router as bookings_router
from src.bookings.notifications import NotificationDispatcher
from src.bookings.ticket_service import TicketArtifactGenerator, ArtifactStore, ArtifactSweeper
from src.bookings.tokens import CapabilityTokenService

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and run the background workers for the life of the process"""
    Base.metadata.create_all(bind=engine)

    store = ArtifactStore(settings.QR_CODE_DIR)
    app.state.artifact_store = store
    app.state.artifact_generator = TicketArtifactGenerator()
    app.state.token_service = CapabilityTokenService()
    app.state.notification_dispatcher = NotificationDispatcher()
    app.state.artifact_sweeper = ArtifactSweeper(
        store,
        retention=timedelta(days=settings.QR_RETENTION_DAYS),
        interval=timedelta(hours=settings.QR_CLEANUP_INTERVAL_HOURS)
    )

    app.state.notification_dispatcher.start()
    app.state.artifact_sweeper.start()
    logger.info("%s started", settings.PROJECT_NAME)
    try:
        yield
    finally:
        app.state.artifact_sweeper.stop()
        app.state.notification_dispatcher.stop()
        logger.info("%s stopped", settings.PROJECT_NAME)

def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Event ticketing API with seat-limited bookings and QR tickets",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],  # frontend dev servers
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(
        auth_router.router,
        prefix=f"{settings.API_V1_STR}/auth",
        tags=["Authentication"]
    )

    app.include_router(
        events_router.router,
        prefix=f"{settings.API_V1_STR}/events",
        tags=["Events"]
    )

    app.include_router(
        bookings_router,
        prefix=f"{settings.API_V1_STR}/bookings",
        tags=["Booking & Ticketing"]
    )

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": settings.PROJECT_NAME,
            "version": "1.0.0",
            "docs": "/docs"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
