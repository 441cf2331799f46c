from .environment import Environment
from .comparison_model import ComparisonModelStatus, ForecastComparisonModel
from .datasets import ActualsDataset, DataSourceType, ForecastDataset, LoadStatus
from .forecast_run import ForecastRun, RunStatus
from .comparison import ComparisonResult, ComparisonRun

__all__ = [
    "ActualsDataset",
    "ComparisonModelStatus",
    "ComparisonResult",
    "ComparisonRun",
    "DataSourceType",
    "Environment",
    "ForecastComparisonModel",
    "ForecastDataset",
    "ForecastRun",
    "LoadStatus",
    "RunStatus",
]
