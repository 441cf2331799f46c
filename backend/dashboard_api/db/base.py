from importlib import import_module

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Model modules register their tables with Base.metadata on import.
# load_models() must run before any Base.metadata.create_all(...)
_model_modules = [
    "environment",
    "comparison_model",
    "datasets",
    "forecast_run",
    "comparison",
]


def load_models() -> None:
    for _mod in _model_modules:
        import_module(f"dashboard_api.models.{_mod}")
