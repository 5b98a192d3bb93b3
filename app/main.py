from fastapi import FastAPI

from app.db.base import Base, engine, log_database_diagnostics
from app.levels.models import LevelProgress, LevelMilestone  # Import so create_all picks them up

from app.health.routes import router as health_router
from app.levels.routes import router as level_router
from app.api.routes import router as api_router


app = FastAPI(title="Territory Run API", version="0.1.0")

log_database_diagnostics()

# Create database tables (still useful in dev; in production prefer Alembic)
Base.metadata.create_all(bind=engine)

# Include routers
app.include_router(health_router)
app.include_router(level_router)
app.include_router(api_router)
