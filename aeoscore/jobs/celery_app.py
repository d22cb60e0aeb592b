"""Celery configuration for scheduled audits."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from aeoscore.utils.dates import timezone_name

broker_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
backend_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")

celery_app = Celery("aeoscore", broker=broker_url, backend=backend_url, include=["aeoscore.jobs.audit"])
celery_app.conf.timezone = timezone_name()
celery_app.conf.beat_schedule = {
    "nightly-audit": {
        "task": "aeoscore.jobs.audit.run_audits",
        "schedule": crontab(hour=int(os.environ.get("AUDIT_HOUR", "3")), minute=int(os.environ.get("AUDIT_MINUTE", "0"))),
    },
}


@celery_app.task(name="aeoscore.jobs.audit.run_audits")
def run_audits_task() -> int:  # pragma: no cover - executed by worker
    import asyncio

    from aeoscore.jobs.audit import run_audits

    return len(asyncio.run(run_audits()))
