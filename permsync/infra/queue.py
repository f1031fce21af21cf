"""Redis/RQ queues for tenant permission updates."""

from typing import Dict, Any
from redis import Redis
from rq import Queue
from rq.job import Job
from rq.exceptions import NoSuchJobError

from permsync.infra.config import config
from permsync.infra.metrics import queue_jobs_total
from permsync.models.queue_item import QueueItem

# RQ stores pickled payloads, so no decode_responses here
redis_conn = Redis.from_url(config.REDIS_URL)

default_queue = Queue("default", connection=redis_conn)
high_priority_queue = Queue("high_priority", connection=redis_conn)
low_priority_queue = Queue("low_priority", connection=redis_conn)

QUEUES = {
    "high": high_priority_queue,
    "default": default_queue,
    "low": low_priority_queue,
}


def enqueue_permission_update(item: QueueItem, priority: str = "default") -> str:
    """
    Enqueue a tenant permission update.

    Args:
        item: The tenant to reconcile
        priority: 'high', 'default', or 'low'

    Returns:
        Job ID for tracking
    """
    from permsync.workers.permission_processor import process_permission_update

    queue = QUEUES.get(priority, default_queue)
    job = queue.enqueue(
        process_permission_update,
        item.model_dump(by_alias=True),
        job_timeout=600,  # Permission grants can take several Graph round trips
        result_ttl=86400,
        description=f"Update permissions for {item.display_name}",
    )
    queue_jobs_total.labels(queue=queue.name, status="enqueued").inc()
    return job.id


def get_job_status(job_id: str) -> Dict[str, Any]:
    """
    Get status of a queued job.

    Args:
        job_id: Job ID returned from enqueue

    Returns:
        Dict with status, result (if finished), error (if failed)
    """
    try:
        job = Job.fetch(job_id, connection=redis_conn)
    except NoSuchJobError:
        return {"job_id": job_id, "status": "not_found"}

    job_status = job.get_status()
    status_info = {
        "job_id": job_id,
        "status": getattr(job_status, "value", job_status),
        "created_at": job.created_at.isoformat() if job.created_at else None,
    }

    if job.is_finished:
        status_info["result"] = job.result
        status_info["ended_at"] = job.ended_at.isoformat() if job.ended_at else None
    elif job.is_failed:
        status_info["error"] = str(job.exc_info) if job.exc_info else "Unknown error"
        status_info["ended_at"] = job.ended_at.isoformat() if job.ended_at else None
    elif job.is_started:
        status_info["started_at"] = job.started_at.isoformat() if job.started_at else None

    return status_info

