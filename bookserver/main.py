"""Entry point for the book server."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from bookserver.cleanup_task import OrphanedBlobCleaner
from bookserver.config import SERVER_HOST, SERVER_PORT
from bookserver.database import init_database
from bookserver.exceptions import BookServerException, ErrorCode
from bookserver.routes.auth_routes import router as auth_router
from bookserver.routes.book_routes import router as book_router
from bookserver.routes.user_routes import router as user_router

logger = setup_logging('bookserver')

app = FastAPI(
    title="Bookshelf Server",
    description="E-book library server: accounts, book metadata, tags, book files and covers",
    version="1.0.0"
)

cleanup_task = OrphanedBlobCleaner()


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database and start background tasks on application startup.
    """
    logger.info("Book server starting up...")

    init_database()
    logger.info("Database initialized")

    await cleanup_task.start()
    logger.info("Background cleanup task started")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Book server shutting down...")

    await cleanup_task.stop()
    logger.info("Cleanup task stopped")


@app.exception_handler(BookServerException)
async def book_server_exception_handler(request: Request, exc: BookServerException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc.message} [request_id={request_id}] path={request.url.path}",
            exc_info=exc
        )
    else:
        logger.warning(
            f"{type(exc).__name__}: {exc.message} [request_id={request_id}] path={request.url.path}"
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Unhandled error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": 500, "message": "Internal server error", "code": int(ErrorCode.INTERNAL_ERROR)}
    )


app.include_router(auth_router)
app.include_router(user_router)
app.include_router(book_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "bookserver"}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "bookserver.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
    )


if __name__ == "__main__":
    main()
