from .logging import configure_logging
from .instrument import log_job

__all__ = ["configure_logging", "log_job"]
