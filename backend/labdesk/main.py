"""
LabDesk - Laboratory intake-to-result workflow API.
Configurable lab test schemas, guided data entry and rank-based reporting.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .core.config import settings
from .core.error_handlers import register_error_handlers
from .models.base import Base, engine
from . import models  # noqa: F401  Ensure all tables are registered
from .api import lab_tests, patients, workflow, tests, reports
from .seed_demo import seed_demo_data

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create all database tables
# NOTE: In production, use Alembic migrations instead of create_all()
Base.metadata.create_all(bind=engine)

# Seed the demo lab test and patient (idempotent)
if settings.SEED_DEMO_DATA:
    seed_demo_data()

app = FastAPI(
    title="LabDesk Laboratory Workflow API",
    description=(
        "Patient registration, test assignment, schema-driven result entry "
        "and aggregated lab statistics."
    ),
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(lab_tests.router, prefix="/api/v1")
app.include_router(patients.router, prefix="/api/v1")
app.include_router(workflow.router, prefix="/api/v1")
app.include_router(tests.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}
