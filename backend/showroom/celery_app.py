"""
Celery worker that keeps the dashboard metrics snapshot fresh.
"""
from datetime import date
import logging

from celery import Celery
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .database import SessionLocal
from .services.dashboard_metrics import upsert_metrics

logger = logging.getLogger(__name__)

celery_app = Celery(
    "showroom",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    beat_schedule={
        "refresh-dashboard-metrics": {
            "task": "refresh_dashboard_metrics",
            "schedule": float(settings.METRICS_REFRESH_SECONDS),
        },
    },
)


@celery_app.task(name="refresh_dashboard_metrics")
def refresh_dashboard_metrics(metric_date: str | None = None) -> dict:
    """Recompute and store the metrics row for a day (today by default)."""
    on = date.fromisoformat(metric_date) if metric_date else date.today()
    db = SessionLocal()

    try:
        metric = upsert_metrics(db=db, on=on)
        db.commit()
        result = {
            "metric_date": on.isoformat(),
            "vehicles_available": metric.vehicles_available,
            "pending_repairs": metric.pending_repairs,
            "low_stock_items": metric.low_stock_items,
        }
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Dashboard metrics refresh for %s failed", on.isoformat())
        raise
    finally:
        db.close()

    return result
