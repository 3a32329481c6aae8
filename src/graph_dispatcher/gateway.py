"""
Triplestore gateway: SPARQL 1.1 protocol over HTTP.

Queries and updates are sent as form-encoded POSTs with the ``mu-auth-sudo``
header so they run with elevated privileges. Any failure that survives the
retries is raised as GatewayError; callers never get partial results.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Protocol

import httpx
from pyoxigraph import BlankNode, Literal, NamedNode, RdfFormat, parse

from graph_dispatcher.terms import Quad, Term

logger = logging.getLogger(__name__)

SPARQL_RESULTS_JSON = "application/sparql-results+json"
N_TRIPLES = "application/n-triples"

Row = Dict[str, Term]


def _is_retryable(error: httpx.HTTPError) -> bool:
    """Transport failures and server errors; a 4xx will fail the same way again."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return True


class GatewayError(Exception):
    """Raised when the triplestore cannot execute a query or update."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        query: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.query = query


class Gateway(Protocol):
    """The two operations the dispatcher needs from a triplestore."""

    def query(self, text: str) -> List[Row]:
        ...

    def update(self, text: str) -> None:
        ...


class ConstructGateway(Gateway, Protocol):
    """A gateway that can also answer CONSTRUCT queries."""

    def construct(self, text: str) -> List[Quad]:
        ...


class SparqlGateway:
    """
    Client for a SPARQL query/update endpoint.

    Example:
        with SparqlGateway("http://database:8890/sparql") as gateway:
            rows = gateway.query("SELECT ?s WHERE { ?s ?p ?o } LIMIT 1")
            gateway.update("INSERT DATA { GRAPH <http://g> { <s> <p> <o> . } }")
    """

    def __init__(
        self,
        endpoint: str,
        update_endpoint: Optional[str] = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 3,
        retry_backoff_seconds: float = 0.5,
        sudo: bool = True,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            endpoint: URL of the SPARQL query endpoint
            update_endpoint: URL for updates (defaults to ``endpoint``)
            timeout_seconds: Per-request timeout
            max_retries: Attempts per request before giving up
            retry_backoff_seconds: Linear backoff step between attempts
            sudo: Send the ``mu-auth-sudo`` header
            headers: Extra headers for every request
            client: Preconfigured httpx client (tests, connection reuse)
        """
        self.endpoint = endpoint
        self.update_endpoint = update_endpoint or endpoint
        self.max_retries = max(1, max_retries)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._headers = dict(headers or {})
        if sudo:
            self._headers["mu-auth-sudo"] = "true"
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def _post(self, url: str, field: str, text: str, accept: str) -> httpx.Response:
        headers = {"Accept": accept, **self._headers}
        last_error: Optional[httpx.HTTPError] = None

        for attempt in range(self.max_retries):
            try:
                response = self._client.post(url, data={field: text}, headers=headers)
                response.raise_for_status()
                return response
            except httpx.HTTPError as e:
                last_error = e
                if not _is_retryable(e):
                    logger.error(f"SPARQL {field} rejected: {e}")
                    break
                logger.warning(
                    f"SPARQL {field} failed (attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if attempt + 1 < self.max_retries:
                    time.sleep(self.retry_backoff_seconds * (attempt + 1))

        status_code = None
        if isinstance(last_error, httpx.HTTPStatusError):
            status_code = last_error.response.status_code
        raise GatewayError(
            f"SPARQL {field} failed after {attempt + 1} attempts: {last_error}",
            status_code=status_code,
            query=text,
        ) from last_error

    def query(self, text: str) -> List[Row]:
        """
        Execute a SELECT query.

        Returns:
            One dict per solution, mapping variable names to terms. Unbound
            variables are absent from the dict.
        """
        response = self._post(self.endpoint, "query", text, SPARQL_RESULTS_JSON)
        try:
            data = response.json()
            bindings = data.get("results", {}).get("bindings", [])
            return [
                {var: Term.from_binding(value) for var, value in binding.items()}
                for binding in bindings
            ]
        except ValueError as e:
            raise GatewayError(f"Malformed SPARQL results: {e}", query=text) from e

    def construct(self, text: str) -> List[Quad]:
        """Execute a CONSTRUCT query and parse the returned N-Triples."""
        response = self._post(self.endpoint, "query", text, N_TRIPLES)
        try:
            return [
                Quad(
                    subject=term_from_oxigraph(triple.subject),
                    predicate=term_from_oxigraph(triple.predicate),
                    object=term_from_oxigraph(triple.object),
                )
                for triple in parse(response.content, RdfFormat.N_TRIPLES)
            ]
        except (SyntaxError, ValueError) as e:
            raise GatewayError(f"Malformed CONSTRUCT response: {e}", query=text) from e

    def update(self, text: str) -> None:
        """Execute a SPARQL update."""
        self._post(self.update_endpoint, "update", text, SPARQL_RESULTS_JSON)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "SparqlGateway":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def term_from_oxigraph(term) -> Term:
    if isinstance(term, NamedNode):
        return Term.iri(term.value)
    if isinstance(term, BlankNode):
        return Term.bnode(term.value)
    if isinstance(term, Literal):
        return Term.literal(term.value, term.datatype.value, term.language)
    raise ValueError(f"Unsupported term in CONSTRUCT result: {term!r}")
