"""Main application module for the face dataset recognizer service."""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from facerecognizer.api import router as api_v1_router
from facerecognizer.core.config import settings
from facerecognizer.core.container import container
from facerecognizer.core.exceptions import ServiceNotInitializedError
from facerecognizer.core.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[Any, None]:
    """Handle application startup and shutdown events.

    Args:
        app: FastAPI application instance

    Returns:
        AsyncGenerator[Any, None]: Async context manager for app lifecycle
    """
    logger.info(
        "Starting up face dataset recognizer",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
    )

    container.initialize()
    logger.info("Initialized application services")

    yield

    logger.info("Shutting down face dataset recognizer")
    container.cleanup()
    logger.info("Cleaned up application resources")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.exception_handler(ServiceNotInitializedError)
async def service_not_initialized_handler(
    request: Request, exc: ServiceNotInitializedError
) -> JSONResponse:
    """Report requests that arrive before the recognizer is ready."""
    logger.error("Service not initialized", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint.

    Returns:
        dict: Health status
    """
    logger.info("Health check requested")
    recognizer = container.recognizer
    if recognizer is None:
        return {"status": "starting", "dataset_size": 0}
    return {"status": "healthy", "dataset_size": len(recognizer.dataset)}


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
