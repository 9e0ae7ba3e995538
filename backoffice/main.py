from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import settings
from backoffice.database import init_db, close_db, get_db
from backoffice.exceptions import (
    DocumentNotFound,
    EngineError,
    InvalidStateTransition,
    ValidationError,
)
from backoffice.logging_config import setup_logging
from backoffice.middleware.correlation import CorrelationIdMiddleware
from backoffice.services.order_system import close_order_system

# Import models so they are registered with Base.metadata
import backoffice.models  # noqa: F401

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_backoffice", env=settings.ENVIRONMENT)
    # Fail fast on a bad restock policy
    settings.return_config()
    await init_db()
    yield
    await close_order_system()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers: normalize all errors to structured format:
# {"error": {"code": "...", "message": "..."}}
# ---------------------------------------------------------------------------

ENGINE_ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidStateTransition: status.HTTP_409_CONFLICT,
    DocumentNotFound: status.HTTP_404_NOT_FOUND,
}


@app.exception_handler(EngineError)
async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
    status_code = ENGINE_ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning("request_rejected", code=exc.code, message=exc.message, status=status_code)
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        detail = {"error": {"code": "HTTP_ERROR", "message": detail}}
    elif isinstance(detail, dict) and "error" not in detail:
        detail = {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            }
        },
    )


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except Exception as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from backoffice.routes.purchase_orders import router as po_router  # noqa: E402
from backoffice.routes.delivery_notes import router as delivery_notes_router  # noqa: E402
from backoffice.routes.return_notes import router as return_notes_router  # noqa: E402
from backoffice.routes.numbering import router as numbering_router  # noqa: E402
from backoffice.routes.tax import router as tax_router  # noqa: E402

app.include_router(po_router, prefix="/api/v1/purchase-orders", tags=["Purchase Orders"])
app.include_router(delivery_notes_router, prefix="/api/v1/delivery-notes", tags=["Delivery Notes"])
app.include_router(return_notes_router, prefix="/api/v1/return-notes", tags=["Return Notes"])
app.include_router(numbering_router, prefix="/api/v1/document-numbers", tags=["Numbering"])
app.include_router(tax_router, prefix="/api/v1/tax", tags=["Tax"])
