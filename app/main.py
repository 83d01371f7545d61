import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.api import api_router
from app.core.config import settings
from app.utils.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup...")
    if not settings.AUTOMATION_ENABLED:
        logger.warning("Workflow automation is disabled (AUTOMATION_ENABLED=false)")
    yield
    logger.info("Application shutdown...")
    from app.database.session import engine
    if engine is not None:
        await engine.dispose()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Helpdesk automation and agent leave API",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json" if settings.API_V1_STR else "/openapi.json",
    lifespan=lifespan
)

class HealthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/health":
            return Response("OK", status_code=200)
        return await call_next(request)

origins = settings.BACKEND_CORS_ORIGINS
regex_parts = [o.replace('.', r'\.').replace('*', r'[a-zA-Z0-9-]+') for o in origins]
origin_regex = r"|".join(regex_parts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(HealthMiddleware)
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/health-detailed")
async def health_check_detailed():
    """Health check including database connectivity"""
    from sqlalchemy import text
    from app.database.session import engine
    health_status = {"status": "healthy", "timestamp": time.time()}
    if engine is None:
        health_status["database"] = {"configured": False}
        health_status["status"] = "degraded"
        return health_status
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = {"configured": True, "reachable": True}
    except Exception as db_error:
        health_status["database"] = {"configured": True, "reachable": False, "error": str(db_error)}
        health_status["status"] = "degraded"
    return health_status

@app.get("/")
def read_root():
    """Root endpoint"""
    return {"message": "Helpdesk API is running"}
