from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
import logging
from pydantic import ValidationError as PydanticValidationError

from cropscan import __version__
from cropscan.api.routes.scan import router as scan_router
from cropscan.core.config import settings
from cropscan.services.errors import (
    REMEDIATION_HINTS,
    AlreadyRunning,
    InternalFailure,
    MissingInput,
    UnresolvedCrop,
    WorkflowError,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CropScan",
    version=__version__,
    description="Indian crop identification, disease diagnosis and farming guide",
)

_WORKFLOW_STATUS = {
    MissingInput: status.HTTP_400_BAD_REQUEST,
    AlreadyRunning: status.HTTP_409_CONFLICT,
    UnresolvedCrop: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle FastAPI HTTPExceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Request failed", "detail": exc.detail}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    detail = "; ".join([f"{e['loc'][-1]}: {e['msg']}" for e in errors])

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Validation error", "detail": detail}
    )


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
    """Handle Pydantic validation errors from manual model construction."""
    errors = exc.errors()
    detail = "; ".join([f"{e['loc'][-1] if e['loc'] else 'field'}: {e['msg']}" for e in errors])

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Validation error", "detail": detail}
    )


@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError):
    """
    Report analysis failures with their kind and the remediation hints.
    Internal failures keep their detail out of the response.
    """
    status_code = _WORKFLOW_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)

    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"Analysis failed on {request.method} {request.url.path}: {exc.detail}")
        detail = "Analysis failed. Please try again with a different image."
    else:
        detail = exc.detail

    return JSONResponse(
        status_code=status_code,
        content={
            "error": "Analysis failed",
            "detail": detail,
            "kind": exc.kind,
            "hints": REMEDIATION_HINTS,
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Anything that escapes the scan pipeline outside a WorkflowError.
    The traceback goes to the log; the client gets the remediation hints.
    """
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}",
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": "Analysis failed. Please try again with a different image.",
            "kind": InternalFailure.kind,
            "hints": REMEDIATION_HINTS,
        }
    )


@app.get("/health")
def health():
    return {"status": "ok"}

app.include_router(scan_router, prefix="/v1")
