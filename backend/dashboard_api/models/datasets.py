from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from dashboard_api.db.base import Base
from dashboard_api.db.types import JSON_PAYLOAD
from ._common import new_id, utcnow


class LoadStatus(str, enum.Enum):
    PENDING = "PENDING"
    LOADING = "LOADING"
    VALIDATING = "VALIDATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DataSourceType(str, enum.Enum):
    BIGQUERY = "BIGQUERY"
    FILE_UPLOAD = "FILE_UPLOAD"
    UKG_DIMENSIONS = "UKG_DIMENSIONS"


class _DatasetColumns:
    # load_status is free text: rows written by other tools may hold values outside LoadStatus
    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    data_source = Column(String(32), nullable=False, default=DataSourceType.BIGQUERY.value)
    bigquery_table = Column(String(255), nullable=True)
    uploaded_file = Column(String(255), nullable=True)
    record_count = Column(Integer, nullable=True)
    date_range = Column(JSON_PAYLOAD, nullable=True)
    load_status = Column(String(32), nullable=False, default=LoadStatus.PENDING.value)
    loaded_at = Column(DateTime(timezone=True), nullable=True)
    meta = Column("metadata", JSON_PAYLOAD, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class ActualsDataset(_DatasetColumns, Base):
    __tablename__ = "actuals_datasets"

    comparison_model_id = Column(
        String(36),
        ForeignKey("forecast_comparison_models.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    comparison_model = relationship("ForecastComparisonModel", back_populates="actuals_dataset")


class ForecastDataset(_DatasetColumns, Base):
    __tablename__ = "forecast_datasets"

    comparison_model_id = Column(
        String(36),
        ForeignKey("forecast_comparison_models.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    model_type = Column(String(64), nullable=True)
    ukg_dimensions_job_id = Column(String(255), nullable=True)

    comparison_model = relationship("ForecastComparisonModel", back_populates="forecast_datasets")
    results = relationship(
        "ComparisonResult", back_populates="forecast_dataset", cascade="all, delete-orphan"
    )


DATASET_MODELS = {"actuals": ActualsDataset, "forecast": ForecastDataset}
