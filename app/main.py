import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.exceptions import (
    SubmissionError, ValidationFailed, PersistenceFailed,
    ApplicationNotFound, InvalidStatusTransition
)
from app.core.i18n import DEFAULT_LANGUAGE, parse_language, translate
from app.api.v1 import applications, payments, services
from app.api.v1.endpoints import health

settings = get_settings()
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    logger.info("Starting up %s (%s)...", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield
    # Shutdown
    logger.info("Shutting down %s...", settings.PROJECT_NAME)


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Backend API for Cabo Verde Visa - EASE and tourist visa pre-registration",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if settings.ENVIRONMENT == "prod" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _language(request: Request):
    return parse_language(request.query_params.get("lang", DEFAULT_LANGUAGE.value))


@app.exception_handler(ValidationFailed)
async def validation_failed_handler(request: Request, exc: ValidationFailed):
    logger.info("Submission rejected by validation: %s", exc.message)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": translate("validation_failed", _language(request)),
            "errors": exc.errors
        }
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"][1:]) or "body",
            "message": error["msg"]
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": translate("validation_failed", _language(request)),
            "errors": errors
        }
    )


@app.exception_handler(SubmissionError)
async def submission_error_handler(request: Request, exc: SubmissionError):
    # Same message for every step; the category is for the logs
    logger.error(
        "Submission failed at step %s (reference=%s): %s",
        exc.step, exc.reference, exc.message
    )
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if isinstance(exc, PersistenceFailed)
        else status.HTTP_502_BAD_GATEWAY
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": translate("submission_failed", _language(request)),
            "reference": exc.reference
        }
    )


@app.exception_handler(ApplicationNotFound)
async def not_found_handler(request: Request, exc: ApplicationNotFound):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "success": False,
            "message": translate("not_found", _language(request)),
            "reference": exc.reference
        }
    )


@app.exception_handler(InvalidStatusTransition)
async def invalid_transition_handler(request: Request, exc: InvalidStatusTransition):
    logger.warning(str(exc))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "success": False,
            "message": translate("invalid_transition", _language(request))
        }
    )


@app.get("/")
def read_root():
    return {
        "name": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "status": "running"
    }


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(services.router, prefix="/api/v1/services", tags=["Services"])
app.include_router(applications.router, prefix="/api/v1/applications", tags=["Applications"])
app.include_router(payments.router, prefix="/api/v1/payments", tags=["Payments"])


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
