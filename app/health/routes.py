from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """Unauthenticated liveness probe; pings the database."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        print(f"[HEALTH] DB check failed: {exc!r}", flush=True)
        return JSONResponse(status_code=500, content={"ok": False, "error": "DB check failed"})
    return {"ok": True, "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")}
