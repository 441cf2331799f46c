from __future__ import annotations

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from dashboard_api.db.base import Base
from dashboard_api.db.types import JSON_PAYLOAD
from ._common import new_id, utcnow
from .forecast_run import RunStatus


class ComparisonRun(Base):
    __tablename__ = "comparison_runs"

    id = Column(String(36), primary_key=True, default=new_id)
    comparison_model_id = Column(
        String(36),
        ForeignKey("forecast_comparison_models.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    selected_forecast_ids = Column(JSON_PAYLOAD, nullable=False, default=list)
    filters = Column(JSON_PAYLOAD, nullable=True)
    status = Column(String(32), nullable=False, default=RunStatus.PENDING.value)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    accuracy_metrics = Column(JSON_PAYLOAD, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    comparison_model = relationship("ForecastComparisonModel", back_populates="comparison_runs")
    results = relationship(
        "ComparisonResult",
        back_populates="comparison_run",
        cascade="all, delete-orphan",
        order_by=lambda: (ComparisonResult.partition_date.desc(), ComparisonResult.org_id.asc()),
    )


class ComparisonResult(Base):
    __tablename__ = "comparison_results"
    __table_args__ = (
        Index("ix_comparison_results_run_date", "comparison_run_id", "partition_date"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    comparison_run_id = Column(
        String(36), ForeignKey("comparison_runs.id", ondelete="CASCADE"), nullable=False
    )
    forecast_dataset_id = Column(
        String(36), ForeignKey("forecast_datasets.id", ondelete="CASCADE"), nullable=False
    )
    org_id = Column(String(128), nullable=False)
    partition_date = Column(Date, nullable=False)
    actual_value = Column(Float, nullable=True)
    forecast_value = Column(Float, nullable=True)
    absolute_error = Column(Float, nullable=True)
    percentage_error = Column(Float, nullable=True)
    accuracy_score = Column(Float, nullable=True)

    comparison_run = relationship("ComparisonRun", back_populates="results")
    forecast_dataset = relationship("ForecastDataset", back_populates="results")
