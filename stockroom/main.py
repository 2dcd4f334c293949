import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stockroom.api import auth, categories, items, movements, reports, suppliers
from stockroom.config import settings
from stockroom.database import SessionLocal, init_db
from stockroom.services.auth_service import ensure_kitchen_account

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    db = SessionLocal()
    try:
        ensure_kitchen_account(db)
    finally:
        db.close()
    logger.info("%s started", settings.APP_NAME)
    yield


app = FastAPI(
    title="Stockroom API",
    description="Restaurant inventory: items, categories, suppliers, stock movements and reports",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return JSON for unhandled exceptions so the frontend can parse the error."""
    logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(auth.router, prefix="/api/v1")
app.include_router(categories.router, prefix="/api/v1")
app.include_router(suppliers.router, prefix="/api/v1")
app.include_router(items.router, prefix="/api/v1")
app.include_router(movements.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
