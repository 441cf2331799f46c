from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from fastapi import status as http
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request bodies arrive with camelCase keys; snake_case is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def provided(self) -> Dict[str, Any]:
        """Fields the client actually sent, explicit nulls included."""
        return {name: getattr(self, name) for name in self.model_fields_set}


def ok(data: Any = None, status_code: int = http.HTTP_200_OK) -> JSONResponse:
    """Return a success payload as-is (dicts and lists are not re-wrapped)."""
    return JSONResponse(content=jsonable_encoder(data), status_code=status_code)


def fail(
    code: str,
    message: str,
    status_code: int = http.HTTP_400_BAD_REQUEST,
    details: Optional[Dict[str, Any]] = None,
    **extra: Any,
) -> JSONResponse:
    """Return the error payload shared with the ApiError handler."""
    payload: Dict[str, Any] = {"success": False, "error": message, "code": code}
    if details:
        payload["details"] = details
    payload.update(extra)
    return JSONResponse(content=jsonable_encoder(payload), status_code=status_code)


def iso(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
