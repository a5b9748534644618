import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from db.database import engine, Base, SessionLocal
from api.catalog import router as catalog_router
from api.logs import router as logs_router
from api.report_data import router as report_data_router
from api.users import router as users_router
from services.report_data_service import ReportDataService

logging.basicConfig(
    level=getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("apscheduler").setLevel(settings.scheduler_log_level)
logger = logging.getLogger(__name__)

# Create all tables
Base.metadata.create_all(bind=engine)

report_data_service = ReportDataService(
    SessionLocal,
    update_delay_seconds=settings.update_delay_seconds,
    cleanup_frequency_seconds=settings.cleanup_frequency_seconds,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    logger.info("Shutting down ReportData update scheduler")
    report_data_service.shutdown()


app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)
app.state.report_data_service = report_data_service

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users_router, prefix="/api")
app.include_router(catalog_router, prefix="/api")
app.include_router(logs_router, prefix="/api")
app.include_router(report_data_router, prefix="/api")


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}
