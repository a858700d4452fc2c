"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.api_campaign import router as campaign
from api.api_instance import router as instance
from api.api_metrics import router as metrics
from service.runtime import build_runtime
from utils.controller_settings import get_controller_settings
from utils.error_handler import ErrorMessages, ErrorResponse
from utils.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared runtime once and start the liveness sweep."""
    runtime = getattr(app.state, "runtime", None)
    if runtime is None:
        runtime = await build_runtime()
        app.state.runtime = runtime
    runtime.start_background()
    logger.info("FleetPulse controller started.")
    try:
        yield
    finally:
        await runtime.shutdown()
        logger.info("FleetPulse controller stopped.")


app = FastAPI(
    title="FleetPulse Controller API",
    description="Worker fleet command and telemetry controller",
    version="1.0.0",
    lifespan=lifespan,
)

controller_settings = get_controller_settings()
DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
]
allowed_origins = DEFAULT_ALLOWED_ORIGINS.copy()
# Allow overriding via env (comma-separated list)
custom_origins = controller_settings.ALLOWED_ORIGINS
if isinstance(custom_origins, str) and custom_origins.strip():
    allowed_origins = [
        origin.strip() for origin in custom_origins.split(",") if origin.strip()
    ]


@app.exception_handler(ErrorResponse)
async def handle_service_error(_: Request, exc: ErrorResponse):
    """Return a unified response body for all ErrorResponse exceptions."""
    return exc.to_response()


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Report which constraint a request body or query violated."""
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    logger.warning(
        "Validation error on {} {}: {}", request.method, request.url.path, details
    )
    return ErrorResponse.unprocessable_entity(
        ErrorMessages.VALIDATION_ERROR, details={"errors": details}
    ).to_response()


@app.exception_handler(HTTPException)
async def handle_http_exception(request: Request, exc: HTTPException):
    """
    Log and return standard HTTP errors without leaking stack traces.
    """
    logger.warning(
        "HTTP error {} on {} {}: {}",
        exc.status_code,
        request.method,
        request.url.path,
        exc.detail,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.detail)


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception):
    """Catch-all for unexpected errors with structured logging."""
    logger.exception("Unhandled error on {} {}", request.method, request.url.path)
    return ErrorResponse.internal_server_error().to_response()


if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy", "service": "controller"})


@app.get("/")
def read_root():
    """Root endpoint."""
    return {"message": "FleetPulse Controller API"}


# add api routers
app.include_router(instance, tags=["instances"])
app.include_router(campaign, prefix="/api/campaigns", tags=["campaigns"])
app.include_router(metrics, prefix="/api/metrics", tags=["metrics"])

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=3000, workers=1)
