import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import settings
from backend.database import engine
from backend.routers import catalog, patients, reports, test_results
from backend.services.storage import build_storage

logging.getLogger("backend").setLevel(settings.log_level.upper())

logger = logging.getLogger(__name__)

allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]


def _assert_database_at_head() -> None:
    project_root = Path(__file__).resolve().parent.parent
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    script = ScriptDirectory.from_config(alembic_cfg)
    expected_heads = set(script.get_heads())

    with engine.connect() as connection:
        context = MigrationContext.configure(connection)
        current_heads = set(context.get_current_heads())

    if current_heads != expected_heads:
        raise RuntimeError(
            "Database schema is not at Alembic head. "
            "Run `alembic upgrade head` before starting the API. "
            f"Current revisions: {sorted(current_heads) or ['<none>']}, "
            f"expected: {sorted(expected_heads)}."
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.storage_backend.strip().lower() == "database":
        _assert_database_at_head()
    app.state.storage = build_storage(settings)
    yield


app = FastAPI(title="MediReport API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"statusCode": 200, "message": "Success", "data": {"status": "ok", "service": "medireport"}}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "medireport",
        "storage": settings.storage_backend,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _error_name(status_code: int) -> str:
    if status_code == 400:
        return "BadRequest"
    if status_code == 404:
        return "NotFound"
    if status_code >= 500:
        return "InternalServerError"
    return "HTTPError"


def _jsonable_errors(errors) -> list[dict]:
    return [{"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]} for error in errors]


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "statusCode": exc.status_code,
            "message": str(exc.detail) if exc.detail else "Request failed",
            "error": _error_name(exc.status_code),
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_: Request, exc: RequestValidationError):
    errors = exc.errors()
    fields = sorted({".".join(str(part) for part in error["loc"][1:]) for error in errors if len(error["loc"]) > 1})
    return JSONResponse(
        status_code=400,
        content={
            "statusCode": 400,
            "message": f"Invalid request payload: {', '.join(fields)}" if fields else "Invalid request payload",
            "error": "ValidationError",
            "details": {"fields": fields, "errors": _jsonable_errors(errors)},
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(_: Request, exc: Exception):
    logger.exception("Unhandled server error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={
            "statusCode": 500,
            "message": "An unexpected error occurred",
            "error": "InternalServerError",
        },
    )


app.include_router(patients.router)
app.include_router(reports.router)
app.include_router(test_results.router)
app.include_router(catalog.router)
