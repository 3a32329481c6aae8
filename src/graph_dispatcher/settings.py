"""
Process configuration read from the environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"

LOG_LEVELS = {
    "error": logging.ERROR,
    "info": logging.INFO,
    "silent": None,
}

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


class ConfigurationError(Exception):
    """Raised when settings or configuration files are invalid."""
    pass


def _url(name: str, default: str) -> str:
    value = os.getenv(name, default)
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigurationError(f"{name} must be an absolute URL, got {value!r}")
    return value


def _bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    if value.lower() in _TRUE:
        return True
    if value.lower() in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


def _float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        number = float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if number < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value!r}")
    return number


@dataclass
class DispatcherSettings:
    """Settings for one dispatcher process."""
    sparql_endpoint: str = "http://database:8890/sparql"
    sparql_update_endpoint: Optional[str] = None
    temp_graph_prefix: str = "http://eredienst-mandatarissen-consumer/temp"
    organization_graph_prefix: str = "http://mu.semte.ch/graphs/organizations/"
    log_level: str = "silent"
    write_errors: bool = False
    error_graph: str = "http://lblod.data.gift/errors"
    error_base: str = "http://data.lblod.info/errors/"
    retry_delay_seconds: float = 5.0
    scan_on_boot: bool = True
    sparql_timeout_seconds: float = 60.0
    sparql_max_retries: int = 3
    paths_config: Path = DATA_DIR / "paths.yaml"
    model_config: Path = DATA_DIR / "model.yaml"
    service_name: str = "worship-positions-graph-dispatcher"

    @property
    def insert_graph(self) -> str:
        """Staging graph holding inserts that still need dispatching."""
        return f"{self.temp_graph_prefix}-inserts"

    @property
    def delete_graph(self) -> str:
        """Staging graph holding deletes that still need reconciling."""
        return f"{self.temp_graph_prefix}-deletes"

    @property
    def staging_graphs(self) -> tuple:
        return (self.insert_graph, self.delete_graph)

    def organization_graph(self, uuid: str) -> str:
        return f"{self.organization_graph_prefix}{uuid}"

    def is_organization_graph(self, graph: str) -> bool:
        return graph not in self.staging_graphs and self.organization_graph_prefix in graph

    @classmethod
    def from_env(cls) -> "DispatcherSettings":
        """
        Read settings from environment variables.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        log_level = os.getenv("LOGLEVEL", "silent").lower()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"LOGLEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}"
            )

        update_endpoint = os.getenv("MU_SPARQL_UPDATEPOINT")
        if update_endpoint:
            update_endpoint = _url("MU_SPARQL_UPDATEPOINT", update_endpoint)

        max_retries = _float("SPARQL_MAX_RETRIES", 3)
        if max_retries < 1 or max_retries != int(max_retries):
            raise ConfigurationError("SPARQL_MAX_RETRIES must be a positive integer")

        return cls(
            sparql_endpoint=_url("MU_SPARQL_ENDPOINT", cls.sparql_endpoint),
            sparql_update_endpoint=update_endpoint,
            temp_graph_prefix=_url("TEMP_GRAPH_PREFIX", cls.temp_graph_prefix),
            organization_graph_prefix=_url(
                "ORGANISATION_GRAPH_PREFIX", cls.organization_graph_prefix
            ),
            log_level=log_level,
            write_errors=_bool("WRITE_ERRORS", cls.write_errors),
            error_graph=_url("ERROR_GRAPH", cls.error_graph),
            error_base=_url("ERROR_BASE", cls.error_base),
            retry_delay_seconds=_float("RETRY_DELAY_SECONDS", cls.retry_delay_seconds),
            scan_on_boot=_bool("SCAN_ON_BOOT", cls.scan_on_boot),
            sparql_timeout_seconds=_float("SPARQL_TIMEOUT_SECONDS", cls.sparql_timeout_seconds),
            sparql_max_retries=int(max_retries),
            paths_config=Path(os.getenv("PATHS_CONFIG", str(DATA_DIR / "paths.yaml"))),
            model_config=Path(os.getenv("MODEL_CONFIG", str(DATA_DIR / "model.yaml"))),
            service_name=os.getenv("SERVICE_NAME", cls.service_name),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sparql_endpoint": self.sparql_endpoint,
            "sparql_update_endpoint": self.sparql_update_endpoint,
            "insert_graph": self.insert_graph,
            "delete_graph": self.delete_graph,
            "organization_graph_prefix": self.organization_graph_prefix,
            "log_level": self.log_level,
            "write_errors": self.write_errors,
            "error_graph": self.error_graph,
            "retry_delay_seconds": self.retry_delay_seconds,
            "scan_on_boot": self.scan_on_boot,
            "paths_config": str(self.paths_config),
            "model_config": str(self.model_config),
        }


def configure_logging(settings: DispatcherSettings) -> None:
    """Apply LOGLEVEL to the package loggers."""
    package_logger = logging.getLogger("graph_dispatcher")
    level = LOG_LEVELS[settings.log_level]
    if level is None:
        package_logger.disabled = True
        return
    package_logger.disabled = False
    package_logger.setLevel(level)
    if not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
