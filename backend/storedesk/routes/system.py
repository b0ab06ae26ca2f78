# backend/storedesk/routes/system.py
"""
System health endpoint.

Checks that the key-value table is reachable and that every persisted
collection still decodes.
"""

import time
from flask import Blueprint, current_app

from ..models import StorageDecodeError
from ..services.storage_service import get_storage
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_storage_health() -> dict:
    """
    Decode every collection once.

    Returns dict with status, latency and record counts. A collection that
    fails to decode marks storage as unhealthy.
    """
    start_time = time.time()
    storage = get_storage()
    collections = {
        "stores": storage.stores,
        "users": storage.users,
        "products": storage.products,
        "customers": storage.customers,
        "sales": storage.sales,
    }
    try:
        counts = {name: len(collection.get_all()) for name, collection in collections.items()}
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": counts,
        }
    except StorageDecodeError as exc:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.error("Storage health check failed: %s", exc)
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": str(exc),
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: storage healthy
    - 503: storage unreachable or malformed
    """
    storage_health = check_storage_health()
    http_status = 200 if storage_health["status"] == "healthy" else 503

    response = {
        "status": storage_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"storage": storage_health},
    }
    return response, http_status
