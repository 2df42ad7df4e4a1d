"""shc2es configuration via environment variables.

Every setting is read from an SHC2ES_* variable. Values that would only
fail later (a malformed Elasticsearch URL, an unparseable boolean) are
rejected up front with a ValidationError naming the variable.
"""

import os
import re
import logging
from typing import Optional

from shc2es import __version__
from shc2es.errors import ValidationError

logger = logging.getLogger("shc2es.config")

ENV_PREFIX = "SHC2ES_"

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


def _env(name: str, default: str = "") -> str:
    return os.environ.get(ENV_PREFIX + name, default).strip()


def validate_url(name: str, value: str) -> str:
    """Require an http(s) URL without a trailing slash after the host."""
    variable = ENV_PREFIX + name
    if not value:
        raise ValidationError(
            f"{variable} is required and must be a valid URL "
            f"(e.g. https://localhost:9200)",
            variable,
            "MISSING_REQUIRED",
        )
    match = re.match(r"^https?://([^/\s]+)(/.*)?$", value)
    if not match:
        raise ValidationError(
            f"{variable} must start with http:// or https:// and name a host "
            f"(got: {value})",
            variable,
            "INVALID_URL",
        )
    path = match.group(2) or ""
    if len(path) > 1 and path.endswith("/"):
        raise ValidationError(
            f"{variable} should not have a trailing slash (got: {value})",
            variable,
            "TRAILING_SLASH",
        )
    return value


def validate_boolean(name: str, value: str, default: bool = False) -> bool:
    """Parse true/false/1/0/yes/no, case-insensitive."""
    if not value:
        return default
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    variable = ENV_PREFIX + name
    raise ValidationError(
        f"{variable} must be true or false (got: {value})",
        variable,
        "INVALID_BOOLEAN",
    )


def validate_int(name: str, value: str, default: int, minimum: int = 1) -> int:
    if not value:
        return default
    variable = ENV_PREFIX + name
    try:
        parsed = int(value)
    except ValueError:
        raise ValidationError(
            f"{variable} must be an integer (got: {value})",
            variable,
            "INVALID_NUMBER",
        ) from None
    if parsed < minimum:
        raise ValidationError(
            f"{variable} must be at least {minimum} (got: {parsed})",
            variable,
            "OUT_OF_RANGE",
        )
    return parsed


class Settings:
    """All configuration sourced from environment."""

    def __init__(self):
        # Core
        self.version = __version__
        self.log_level = _env("LOG_LEVEL", "info")
        self.api_port = validate_int("API_PORT", _env("API_PORT"), 8080)
        self.data_dir = os.path.expanduser(_env("DATA_DIR", "~/.shc2es/data"))

        # Elasticsearch
        self.es_node = validate_url("ES_NODE", _env("ES_NODE", "http://localhost:9200"))
        self.es_user = _env("ES_USER")
        self.es_password = _env("ES_PASSWORD")
        self.es_ca_cert = _env("ES_CA_CERT")
        self.es_tls_verify = validate_boolean(
            "ES_TLS_VERIFY", _env("ES_TLS_VERIFY"), default=True
        )
        self.es_index_prefix = _env("ES_INDEX_PREFIX", "smart-home-events")

        # Ingestion
        self.batch_size = validate_int("BATCH_SIZE", _env("BATCH_SIZE"), 500)
        self.poll_interval = validate_int("POLL_INTERVAL", _env("POLL_INTERVAL"), 2)
        self.watch = validate_boolean("WATCH", _env("WATCH"), default=False)

        if not self.es_tls_verify:
            logger.warning(
                "TLS verification disabled via %sES_TLS_VERIFY", ENV_PREFIX
            )

    def to_writer_config(self) -> dict[str, object]:
        """Convert to the dict format IndexWriter expects."""
        return {
            "endpoint": self.es_node,
            "auth_user": self.es_user,
            "auth_password": self.es_password,
            "ca_cert": self.es_ca_cert,
            "tls_verify": self.es_tls_verify,
        }

    def to_adapter_config(self) -> dict[str, object]:
        """Convert to the dict format source adapters expect."""
        return {
            "path": self.data_dir,
            "poll_interval": self.poll_interval,
            "batch_size": self.batch_size,
        }


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the process-wide Settings, built on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
