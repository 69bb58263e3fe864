"""Entry point for the chat application node."""

import os
import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from common.constants import RECONNECT_INTERVAL_SECONDS, REPLICATION_PORT
from common.logging_config import setup_logging
from appnode.config import HTTP_HOST, HTTP_PORT, LISTENER_HOST, PRIMARY_URL, PUBLIC_DIR
from appnode.database import init_database
from appnode.exceptions import (
    AppNodeException,
    CollectionNotFoundError,
    RecordNotFoundError,
    RecordValidationError,
)
from appnode.hooks import WriteHookRegistry
from appnode.replication.node import ReplicationNode
from appnode.routes.internal_routes import router as internal_router
from appnode.routes.internal_routes import set_replication_node
from appnode.routes.record_routes import router as record_router
from appnode.routes.record_routes import set_record_service
from appnode.services.record_service import RecordService

logger = setup_logging('appnode')

app = FastAPI(
    title="Chat Application Node",
    description="Chat backend node with primary/replica write propagation",
    version="1.0.0"
)

hooks = None
replication_node = None


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(f"Request started: {request.method} {request.url.path} [request_id={request_id}]")

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
    Initialize the database, install the replication hooks and start
    looking for a primary.
    """
    global hooks, replication_node

    logger.info("Application node starting up...")

    init_database()
    logger.info("Database initialized")

    if replication_node is None:
        hooks = WriteHookRegistry()
        replication_node = ReplicationNode(
            primary_url=PRIMARY_URL,
            listen_host=LISTENER_HOST,
            listen_port=REPLICATION_PORT,
            retry_interval=RECONNECT_INTERVAL_SECONDS
        )
        replication_node.install(hooks)
    set_record_service(RecordService(hooks))
    set_replication_node(replication_node)

    await replication_node.start()
    logger.info("Replication started")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop replication tasks on application shutdown.
    """
    logger.info("Application node shutting down...")

    if replication_node:
        await replication_node.stop()
        logger.info("Replication stopped")


@app.exception_handler(CollectionNotFoundError)
async def collection_not_found_handler(request: Request, exc: CollectionNotFoundError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"Collection not found: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc), "code": "COLLECTION_NOT_FOUND"}
    )


@app.exception_handler(RecordNotFoundError)
async def record_not_found_handler(request: Request, exc: RecordNotFoundError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(f"Record not found: {exc} [request_id={request_id}] path={request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc), "code": "RECORD_NOT_FOUND"}
    )


@app.exception_handler(RecordValidationError)
async def record_validation_handler(request: Request, exc: RecordValidationError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"Record validation error: {exc} {exc.errors} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "code": "VALIDATION_FAILED", "errors": exc.errors}
    )


@app.exception_handler(AppNodeException)
async def app_node_exception_handler(request: Request, exc: AppNodeException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Application node exception: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "code": "INTERNAL_ERROR"}
    )


app.include_router(record_router)
app.include_router(internal_router)


@app.get("/health")
async def health_check():
    """
    Health check endpoint for Docker healthcheck.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "appnode"}


if os.path.isdir(PUBLIC_DIR):
    app.mount("/", StaticFiles(directory=PUBLIC_DIR, html=True), name="public")


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "appnode.main:app",
        host=HTTP_HOST,
        port=HTTP_PORT
    )


if __name__ == "__main__":
    main()
