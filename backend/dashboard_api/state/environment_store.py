"""Client-side environment selection state.

An explicit container: callers own an ``EnvironmentStore`` instance and pass
it where it is needed. Only ``environments`` and ``currentEnvironmentId``
survive a restart; loading/error flags are per-session.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = structlog.get_logger(__name__)


class PersistedState(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    environments: List[Dict[str, Any]] = Field(default_factory=list)
    current_environment_id: Optional[str] = None


class StateStorage(Protocol):
    def load(self) -> Optional[Dict[str, Any]]: ...

    def save(self, state: Dict[str, Any]) -> None: ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self.data = json.loads(json.dumps(initial)) if initial is not None else None
        self.saves = 0

    def load(self) -> Optional[Dict[str, Any]]:
        return json.loads(json.dumps(self.data)) if self.data is not None else None

    def save(self, state: Dict[str, Any]) -> None:
        self.data = json.loads(json.dumps(state))
        self.saves += 1


class JsonFileStorage:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        return json.loads(self.path.read_text(encoding="utf-8"))

    def save(self, state: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(state, indent=2), encoding="utf-8")
        tmp.replace(self.path)


class EnvironmentStore:
    def __init__(self, storage: Optional[StateStorage] = None) -> None:
        self.storage: StateStorage = storage or MemoryStorage()
        self.environments: List[Dict[str, Any]] = []
        self.current_environment_id: Optional[str] = None
        self.is_loading = False
        self.error: Optional[str] = None
        self._hydrated = False

    # --- persistence ---

    def hydrate(self) -> None:
        """Load the persisted subset once; later calls are no-ops."""
        if self._hydrated:
            return
        raw = self.storage.load()
        if raw:
            state = PersistedState.model_validate(raw)
            self.environments = state.environments
            self.current_environment_id = state.current_environment_id
        self._hydrated = True
        logger.debug("environment_store.hydrated", environments=len(self.environments))

    def snapshot(self) -> Dict[str, Any]:
        state = PersistedState(
            environments=self.environments,
            current_environment_id=self.current_environment_id,
        )
        return state.model_dump(by_alias=True)

    def _persist(self) -> None:
        if self._hydrated:
            self.storage.save(self.snapshot())

    # --- actions ---

    def set_environments(self, environments: List[Dict[str, Any]]) -> None:
        self.environments = list(environments)
        self._persist()

    def add_environment(self, environment: Dict[str, Any]) -> None:
        self.environments = [*self.environments, environment]
        self._persist()

    def update_environment(self, environment_id: str, updates: Dict[str, Any]) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        self.environments = [
            {**env, **updates, "updatedAt": stamp} if env.get("id") == environment_id else env
            for env in self.environments
        ]
        self._persist()

    def delete_environment(self, environment_id: str) -> None:
        self.environments = [env for env in self.environments if env.get("id") != environment_id]
        if self.current_environment_id == environment_id:
            self.current_environment_id = None
        self._persist()

    def set_current_environment(self, environment_id: Optional[str]) -> None:
        self.current_environment_id = environment_id
        self._persist()

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading

    def set_error(self, error: Optional[str]) -> None:
        self.error = error

    # --- derived ---

    @property
    def current_environment(self) -> Optional[Dict[str, Any]]:
        if self.current_environment_id is None:
            return None
        return next(
            (env for env in self.environments if env.get("id") == self.current_environment_id),
            None,
        )

    @property
    def active_environments(self) -> List[Dict[str, Any]]:
        return [env for env in self.environments if env.get("isActive")]
