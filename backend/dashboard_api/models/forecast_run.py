from __future__ import annotations

import enum
import secrets
import time

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from dashboard_api.db.base import Base
from dashboard_api.db.types import JSON_PAYLOAD
from ._common import utcnow

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class RunStatus(str, enum.Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


def new_run_id() -> str:
    """run_<epoch-millis>_<9 base36 chars>"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"run_{int(time.time() * 1000)}_{suffix}"


class ForecastRun(Base):
    __tablename__ = "forecast_runs"

    id = Column(String(64), primary_key=True, default=new_run_id)
    environment_id = Column(
        String(36), ForeignKey("environments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    model_id = Column(String(255), nullable=False, default="manual-sync")
    bigquery_project_id = Column(String(255), nullable=True)
    status = Column(String(32), nullable=False, default=RunStatus.PENDING.value, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    meta = Column("metadata", JSON_PAYLOAD, nullable=True)

    environment = relationship("Environment", back_populates="forecast_runs")
