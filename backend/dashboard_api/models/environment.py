from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from dashboard_api.db.base import Base
from dashboard_api.db.types import EncryptedJSON
from ._common import new_id, utcnow

UKG_FIELDS = (
    "ukg_pro_url",
    "ukg_pro_client_id",
    "ukg_pro_client_secret",
    "ukg_pro_app_key",
    "ukg_pro_username",
    "ukg_pro_password",
)


class Environment(Base):
    """Credential bundle for one BigQuery project and (optionally) one UKG Pro tenant."""

    __tablename__ = "environments"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    bigquery_project_id = Column(String(255), nullable=True)
    bigquery_dataset = Column(String(255), nullable=True)
    bigquery_credentials = Column(EncryptedJSON, nullable=True)
    ukg_pro_url = Column(String(512), nullable=True)
    ukg_pro_client_id = Column(String(255), nullable=True)
    ukg_pro_client_secret = Column(EncryptedJSON, nullable=True)
    ukg_pro_app_key = Column(String(255), nullable=True)
    ukg_pro_username = Column(String(255), nullable=True)
    ukg_pro_password = Column(EncryptedJSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    forecast_runs = relationship("ForecastRun", back_populates="environment", passive_deletes="all")
    comparison_models = relationship(
        "ForecastComparisonModel", back_populates="environment", passive_deletes="all"
    )

    @property
    def ukg_pro_configured(self) -> bool:
        return all(getattr(self, field) for field in UKG_FIELDS)
