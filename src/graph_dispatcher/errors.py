"""
Persisting failures as error records in the triplestore.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from graph_dispatcher.gateway import Gateway, GatewayError
from graph_dispatcher.namespaces import SPARQL_PREFIXES, XSD_DATETIME
from graph_dispatcher.settings import DispatcherSettings
from graph_dispatcher.terms import Term

logger = logging.getLogger(__name__)

SERVICE_BASE = "http://lblod.data.gift/services/"


class ErrorReporter:
    """
    Writes an ``oslc:Error`` record per reported failure.

    Reporting is a no-op unless WRITE_ERRORS is set. A failure to write the
    record is logged and swallowed so it never hides the failure being
    reported.
    """

    def __init__(self, gateway: Gateway, settings: DispatcherSettings):
        self._gateway = gateway
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return self._settings.write_errors

    @property
    def creator(self) -> str:
        return f"{SERVICE_BASE}{self._settings.service_name}"

    def build_record(self, message: str, error_id: Optional[str] = None,
                     created: Optional[datetime] = None) -> str:
        """INSERT DATA update for one error record."""
        error_id = error_id or str(uuid.uuid4())
        created = created or datetime.now(timezone.utc)
        subject = f"<{self._settings.error_base}{error_id}>"
        timestamp = Term.literal(created.isoformat(), datatype=XSD_DATETIME)

        return f"""{SPARQL_PREFIXES}
INSERT DATA {{
  GRAPH <{self._settings.error_graph}> {{
    {subject} a oslc:Error ;
      mu:uuid {Term.literal(error_id).to_sparql()} ;
      oslc:message {Term.literal(message).to_sparql()} ;
      dct:created {timestamp.to_sparql()} ;
      dct:creator <{self.creator}> .
  }}
}}"""

    def report(self, error: BaseException) -> Optional[str]:
        """
        Persist ``error`` if error writing is enabled.

        Returns:
            The id of the written record, or None if nothing was written.
        """
        if not self.enabled:
            return None

        error_id = str(uuid.uuid4())
        message = f"{type(error).__name__}: {error}"
        try:
            self._gateway.update(self.build_record(message, error_id))
        except GatewayError as e:
            logger.error(f"Could not write error record for {message!r}: {e}")
            return None
        return error_id
