"""Health check endpoint with database connectivity check."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from accountlink.core.config import settings
from accountlink.core.database import check_db_connected, get_db
from accountlink.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(db: Session = Depends(get_db)) -> HealthResponse:
    """Report whether the user store answers; merges fail with 503 while it does not."""
    return HealthResponse(
        environment=settings.APP_ENV,
        database="connected" if check_db_connected(db) else "disconnected",
        isolation_level=settings.DATABASE_ISOLATION_LEVEL,
    )
