"""
FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import RequestIDMiddleware, LoggingMiddleware
from api.routes import payments as payments_routes
from application.services.payment_service import PaymentService
from application.utils.locks import KeyedLock
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from core.response import success_response
from core.settings import payment_settings
from infrastructure.repositories.payment_repository import JsonFilePaymentRepository
from infrastructure.tasks.payment_tasks import PaymentProcessingSimulator


# configure logging explicitly at the entry point, not on import
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    repository = JsonFilePaymentRepository(payment_settings.data_file)
    await repository.load()

    locks = KeyedLock()
    simulator = PaymentProcessingSimulator(
        repository=repository,
        locks=locks,
        settings=payment_settings.processing,
    )
    app.state.payment_repository = repository
    app.state.payment_simulator = simulator
    app.state.payment_service = PaymentService(repository, simulator, locks)
    logger.info(
        "payment_service_initialized",
        data_file=str(payment_settings.data_file),
        payments=await repository.count(),
    )
    if not settings.api_keys:
        logger.error("api_keys_not_configured", message="Set API_KEYS; every request will be rejected")

    yield

    await simulator.cancel_all()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Payment lifecycle service with simulated asynchronous processing",
)

# the last middleware added runs first
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(payments_routes.router)


@app.get("/", tags=["Root"])
async def root():
    """Service info"""
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "docs": "/docs",
            "redoc": "/redoc"
        },
        message="Payment service is running"
    )


@app.get("/health", tags=["Health"])
async def health_check():
    return success_response(data={"status": "healthy"}, message="OK")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
