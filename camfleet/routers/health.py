# camfleet/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + blob storage + change feed.
"""

import os
import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from camfleet.database import get_db
from camfleet.dependencies import Services, get_services
from camfleet.config import settings
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), services: Services = Depends(get_services)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Storage reachability (object storage API, or the local media directory)
    - Whether the change feed subscription is live
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "storage": "unknown",
        "realtime": "connected" if services.cache.realtime_connected else "manual refresh only",
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    # Check storage
    if settings.STORAGE_BACKEND == "http":
        try:
            resp = requests.get(
                f"{settings.STORAGE_API_URL.rstrip('/')}/storage/v1/bucket/{settings.LAYOUT_BUCKET}",
                headers={"Authorization": f"Bearer {settings.STORAGE_API_KEY}"} if settings.STORAGE_API_KEY else {},
                timeout=3,
            )
            result["storage"] = "ok" if resp.status_code == 200 else f"http_{resp.status_code}"
        except requests.exceptions.ConnectionError:
            result["storage"] = "unreachable"
            result["status"] = "degraded"
        except Exception as e:
            result["storage"] = f"error: {str(e)}"
    else:
        bucket_dir = os.path.join(settings.STORAGE_DIR, settings.LAYOUT_BUCKET)
        if os.path.isdir(bucket_dir) or os.access(os.path.dirname(os.path.abspath(bucket_dir)), os.W_OK):
            result["storage"] = "ok"
        else:
            result["storage"] = "not writable"
            result["status"] = "degraded"

    return result
