from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON, TypeDecorator

from dashboard_api.security.crypto import seal_credentials, try_open_credentials

logger = structlog.get_logger(__name__)

JSON_PAYLOAD = JSON().with_variant(JSONB(), "postgresql")

SEALED_KEY = "ciphertext"


def is_sealed(value: Any) -> bool:
    return isinstance(value, dict) and set(value) == {SEALED_KEY}


class EncryptedJSON(TypeDecorator):
    """Environment secrets column: a service-account dict or a plain secret, sealed on write.

    A sealed value that no configured APP_ENCRYPTION_KEY opens reads back as None, so
    the environment looks unconfigured instead of handing the ciphertext to BigQuery or
    UKG Pro as if it were a credential.
    """

    impl = JSON_PAYLOAD
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Any:  # noqa: ANN001
        if value is None or is_sealed(value):
            return value
        return {SEALED_KEY: seal_credentials(value)}

    def process_result_value(self, value: Any, dialect) -> Any:  # noqa: ANN001
        if not is_sealed(value):
            # NULL, or a secret stored before sealing was introduced
            return value
        opened = try_open_credentials(value[SEALED_KEY])
        if opened is None:
            logger.warning("credentials.unreadable", reason="no configured key opens the stored secret")
        return opened
