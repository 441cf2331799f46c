from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from dashboard_api.errors import NotFound
from dashboard_api.models.comparison import ComparisonResult, ComparisonRun
from dashboard_api.models.comparison_model import ForecastComparisonModel
from dashboard_api.models.datasets import ForecastDataset
from dashboard_api.schemas.common import iso
from .environments import environment_summary
from .pagination import PageRequest, page_meta

# (lower, upper, label): |percentage error| in [lower, upper) lands in label
ACCURACY_BRACKETS = [
    (0, 10, "90-100%"),
    (10, 20, "80-90%"),
    (20, 30, "70-80%"),
    (30, 40, "60-70%"),
    (40, 50, "50-60%"),
    (50, 60, "40-50%"),
    (60, 70, "30-40%"),
    (70, 80, "20-30%"),
    (80, 90, "10-20%"),
    (90, 100, "0-10%"),
]

_RESULT_ORDER = (ComparisonResult.partition_date.desc(), ComparisonResult.org_id.asc())
_NUMERIC_COLUMNS = (
    "actual_value",
    "forecast_value",
    "absolute_error",
    "percentage_error",
    "accuracy_score",
)


def serialize_comparison_run(run: ComparisonRun) -> Dict[str, Any]:
    return {
        "id": run.id,
        "comparisonModelId": run.comparison_model_id,
        "name": run.name,
        "selectedForecastIds": run.selected_forecast_ids or [],
        "filters": run.filters,
        "status": run.status,
        "startTime": iso(run.start_time),
        "endTime": iso(run.end_time),
        "accuracyMetrics": run.accuracy_metrics,
        "errorMessage": run.error_message,
        "createdAt": iso(run.created_at),
    }


def serialize_result(result: ComparisonResult, *, with_dataset: bool = False) -> Dict[str, Any]:
    payload = {
        "id": result.id,
        "forecastDatasetId": result.forecast_dataset_id,
        "orgId": result.org_id,
        "partitionDate": iso(result.partition_date),
        "actualValue": result.actual_value,
        "forecastValue": result.forecast_value,
        "absoluteError": result.absolute_error,
        "percentageError": result.percentage_error,
        "accuracyScore": result.accuracy_score,
    }
    if with_dataset:
        ds = result.forecast_dataset
        payload["forecastDataset"] = (
            {"id": ds.id, "name": ds.name, "modelType": ds.model_type} if ds is not None else None
        )
    return payload


def get_run(db: Session, run_id: str) -> ComparisonRun:
    run = db.get(ComparisonRun, run_id)
    if run is None:
        raise NotFound("Comparison run not found")
    return run


def run_detail(db: Session, run_id: str) -> Dict[str, Any]:
    run = db.execute(
        select(ComparisonRun)
        .options(
            selectinload(ComparisonRun.comparison_model).selectinload(
                ForecastComparisonModel.environment
            )
        )
        .where(ComparisonRun.id == run_id)
    ).scalar_one_or_none()
    if run is None:
        raise NotFound("Comparison run not found")

    results = db.execute(
        select(ComparisonResult)
        .options(selectinload(ComparisonResult.forecast_dataset))
        .where(ComparisonResult.comparison_run_id == run.id)
        .order_by(*_RESULT_ORDER)
    ).scalars()

    model = run.comparison_model
    return {
        **serialize_comparison_run(run),
        "comparisonModel": {
            "id": model.id,
            "name": model.name,
            "environment": environment_summary(model.environment),
        }
        if model is not None
        else None,
        "results": [serialize_result(r, with_dataset=True) for r in results],
    }


def list_results(db: Session, run_id: str, page: PageRequest) -> Dict[str, Any]:
    run = get_run(db, run_id)
    where = ComparisonResult.comparison_run_id == run.id
    total = db.scalar(select(func.count()).select_from(ComparisonResult).where(where)) or 0
    rows = db.execute(
        select(ComparisonResult)
        .options(selectinload(ComparisonResult.forecast_dataset))
        .where(where)
        .order_by(*_RESULT_ORDER)
        .offset(page.offset)
        .limit(page.limit)
    ).scalars()

    meta = page_meta(total, page)
    return {
        "results": [serialize_result(r, with_dataset=True) for r in rows],
        "total": total,
        "page": meta["page"],
        "limit": meta["limit"],
        "totalPages": meta["totalPages"],
        "hasNextPage": meta["hasNextPage"],
        "hasPreviousPage": meta["hasPreviousPage"],
    }


def _number(value: Any) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return None if math.isnan(value) else value


def summarize_frame(frame: pd.DataFrame) -> Dict[str, Any]:
    """Accuracy statistics for one forecast dataset's results."""
    frame = frame[list(_NUMERIC_COLUMNS)].apply(pd.to_numeric, errors="coerce")
    abs_pct = frame["percentage_error"].abs()
    nonzero_actual = frame["actual_value"].fillna(0) != 0
    mape = abs_pct[nonzero_actual].mean()
    mae = frame["absolute_error"].mean()
    rmse = np.sqrt((frame["absolute_error"] ** 2).mean())
    accuracy = frame["accuracy_score"].dropna()

    valid = abs_pct.dropna()
    distribution = []
    for lower, upper, label in ACCURACY_BRACKETS:
        count = int(((valid >= lower) & (valid < upper)).sum())
        distribution.append(
            {
                "label": label,
                "count": count,
                "percentage": (count / len(valid) * 100) if len(valid) else 0.0,
            }
        )

    return {
        "count": int(len(frame)),
        "mae": _number(mae),
        "rmse": _number(rmse),
        "mape": _number(mape),
        "meanAccuracy": _number(accuracy.mean()) if len(accuracy) else None,
        "medianAccuracy": _number(accuracy.median()) if len(accuracy) else None,
        "stdAccuracy": _number(accuracy.std(ddof=0)) if len(accuracy) else None,
        "withinTenPercent": int((valid <= 10).sum()),
        "withinTwentyPercent": int((valid <= 20).sum()),
        "distribution": distribution,
    }


def summarize_run(db: Session, run_id: str) -> Dict[str, Any]:
    run = get_run(db, run_id)
    rows = db.execute(
        select(
            ComparisonResult.forecast_dataset_id,
            ComparisonResult.actual_value,
            ComparisonResult.forecast_value,
            ComparisonResult.absolute_error,
            ComparisonResult.percentage_error,
            ComparisonResult.accuracy_score,
        ).where(ComparisonResult.comparison_run_id == run.id)
    ).all()
    frame = pd.DataFrame(
        [tuple(r) for r in rows], columns=["forecast_dataset_id", *_NUMERIC_COLUMNS]
    )

    datasets: Dict[str, ForecastDataset] = {}
    if not frame.empty:
        ids = sorted(frame["forecast_dataset_id"].unique())
        stmt = select(ForecastDataset).where(ForecastDataset.id.in_(ids))
        datasets = {ds.id: ds for ds in db.execute(stmt).scalars()}

    forecasts: List[Dict[str, Any]] = []
    for dataset_id, group in frame.groupby("forecast_dataset_id", sort=True):
        ds = datasets.get(dataset_id)
        forecasts.append(
            {
                "forecastDatasetId": dataset_id,
                "forecastDatasetName": ds.name if ds is not None else None,
                "modelType": ds.model_type if ds is not None else None,
                **summarize_frame(group),
            }
        )

    return {
        "comparisonRunId": run.id,
        "status": run.status,
        "forecasts": forecasts,
        "bestPerforming": best_performing(forecasts),
    }


def best_performing(forecasts: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Lowest MAPE wins; ties go to lower MAE, then dataset id."""
    ranked = [f for f in forecasts if f["mape"] is not None]
    if not ranked:
        return None
    ranked.sort(
        key=lambda f: (
            f["mape"],
            f["mae"] if f["mae"] is not None else math.inf,
            f["forecastDatasetId"],
        )
    )
    best = ranked[0]
    return {
        "forecastDatasetId": best["forecastDatasetId"],
        "forecastDatasetName": best["forecastDatasetName"],
        "mape": best["mape"],
        "mae": best["mae"],
    }
