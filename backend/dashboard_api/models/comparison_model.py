from __future__ import annotations

import enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from dashboard_api.db.base import Base
from dashboard_api.db.types import JSON_PAYLOAD
from ._common import new_id, utcnow


class ComparisonModelStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class ForecastComparisonModel(Base):
    __tablename__ = "forecast_comparison_models"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    environment_id = Column(
        String(36), ForeignKey("environments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(String(32), nullable=False, default=ComparisonModelStatus.DRAFT.value)
    meta = Column("metadata", JSON_PAYLOAD, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    environment = relationship("Environment", back_populates="comparison_models")
    actuals_dataset = relationship(
        "ActualsDataset",
        back_populates="comparison_model",
        uselist=False,
        cascade="all, delete-orphan",
    )
    forecast_datasets = relationship(
        "ForecastDataset",
        back_populates="comparison_model",
        cascade="all, delete-orphan",
        order_by="ForecastDataset.created_at.desc()",
    )
    comparison_runs = relationship(
        "ComparisonRun",
        back_populates="comparison_model",
        cascade="all, delete-orphan",
        order_by="ComparisonRun.created_at.desc()",
    )
