# backend/erp/routes/system.py
"""
System health and version endpoints.

/health runs two checks:
- database: one grouped count per document table (draft/posted)
- posting: posted documents must carry posted_at; a row without it was
  posted outside lifecycle_service and is reported, not repaired
"""

import sys
import time
from contextlib import contextmanager

from flask import Blueprint, current_app
from sqlalchemy import func

from ..extensions import db
from ..services.document_service import DOCUMENT_TYPES
from erp.time_utils import utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


@contextmanager
def _timed(result: dict):
    start = time.perf_counter()
    try:
        yield
    finally:
        result["latency_ms"] = round((time.perf_counter() - start) * 1000, 2)


def check_database_health() -> dict:
    """Counts documents by status for every registered type."""
    result: dict = {}
    with _timed(result):
        try:
            details = {}
            for key, doc_type in DOCUMENT_TYPES.items():
                model = doc_type.model
                rows = db.session.query(model.status, func.count(model.id)).group_by(model.status).all()
                counts = dict(rows)
                details[key] = {"draft": counts.get("draft", 0), "posted": counts.get("posted", 0)}
            result.update(status="healthy", details=details)
        except Exception:
            current_app.logger.exception("Database health check failed")
            result.update(status="unhealthy", error="Database error")
    return result


def check_posting_health() -> dict:
    result: dict = {}
    with _timed(result):
        try:
            unstamped = {}
            for key, doc_type in DOCUMENT_TYPES.items():
                model = doc_type.model
                count = (
                    db.session.query(model)
                    .filter(model.status == "posted", model.posted_at.is_(None))
                    .count()
                )
                if count:
                    unstamped[key] = count
        except Exception:
            current_app.logger.exception("Posting health check failed")
            result.update(status="unhealthy", error="Database error")
            return result

    if unstamped:
        current_app.logger.warning("Posted documents without posted_at: %s", unstamped)
        result.update(status="degraded", posted_without_timestamp=unstamped)
    else:
        result.update(status="healthy")
    return result


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: All checks healthy, or posting degraded (data still readable)
    - 503: Database unreachable
    """
    checks = {
        "database": check_database_health(),
        "posting": check_posting_health(),
    }
    statuses = {check["status"] for check in checks.values()}

    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    return {
        "status": overall,
        "timestamp": utcnow().isoformat() + "Z",
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    """
    Non-sensitive deployment information. Never exposes secrets or
    database credentials.
    """
    return {
        "api_version": API_VERSION,
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
