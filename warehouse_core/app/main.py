from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

from .config import get_settings
from .db import create_db_and_tables
from .errors import PeerServiceError
from .logging_config import configure_logging, get_logger
from .routers.cycle_counts import router as cycle_counts_router
from .routers.inventory import router as inventory_router
from .routers.labels import router as labels_router
from .routers.material_issues import router as material_issues_router
from .routers.putaway import router as putaway_router
from .routers.warehouses import router as warehouses_router

logger = get_logger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title="Warehouse Inventory Engine",
        description="FEFO lot allocation, putaway and material issue workflows with an immutable stock ledger",
        version="1.0.0"
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(inventory_router)
    app.include_router(putaway_router)
    app.include_router(material_issues_router)
    app.include_router(warehouses_router)
    app.include_router(cycle_counts_router)
    app.include_router(labels_router)

    # Transient failures: nothing was committed, the caller may retry
    @app.exception_handler(PeerServiceError)
    async def peer_service_error_handler(request: Request, exc: PeerServiceError):
        logger.error("peer_service_error", path=request.url.path, service=exc.service, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": {"code": exc.code, "message": str(exc)}})

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError):
        logger.error("database_unavailable", path=request.url.path, error=str(exc.orig))
        return JSONResponse(
            status_code=503,
            content={"detail": {"code": "store_unavailable", "message": "Database unavailable"}},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("integrity_error", path=request.url.path, error=str(exc.orig))
        return JSONResponse(
            status_code=409,
            content={"detail": {"code": "conflict", "message": "Request conflicts with stored data"}},
        )

    @app.get("/health")
    def health():
        return {"status": "ok", "environment": settings.environment}

    @app.on_event("startup")
    def on_startup():
        logger.info("startup", environment=settings.environment)
        create_db_and_tables()

    return app


app = create_app()
