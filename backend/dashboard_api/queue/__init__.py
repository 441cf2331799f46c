from .accessor import JobQueue, JobSnapshot, sync_job_id
from .connection import get_queue, get_redis

__all__ = ["JobQueue", "JobSnapshot", "get_queue", "get_redis", "sync_job_id"]
