"""Tests for the HTTP SPARQL gateway."""

from urllib.parse import parse_qs

import httpx
import pytest

from graph_dispatcher.gateway import GatewayError, SparqlGateway
from graph_dispatcher.terms import Term

ENDPOINT = "http://database:8890/sparql"

SELECT_RESPONSE = {
    "head": {"vars": ["s", "label"]},
    "results": {"bindings": [
        {
            "s": {"type": "uri", "value": "http://example.org/a"},
            "label": {"type": "literal", "value": "A", "xml:lang": "en"},
        },
        {
            "s": {"type": "uri", "value": "http://example.org/b"},
        },
    ]},
}


def make_gateway(handler, **kwargs):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SparqlGateway(ENDPOINT, client=client, retry_backoff_seconds=0, **kwargs)


class TestQuery:
    """Tests for SELECT queries."""

    def test_parses_bindings(self):
        """Test rows map variable names to terms; unbound variables are absent."""
        gateway = make_gateway(lambda request: httpx.Response(200, json=SELECT_RESPONSE))
        rows = gateway.query("SELECT * WHERE { ?s ?p ?o }")
        assert rows[0]["s"] == Term.iri("http://example.org/a")
        assert rows[0]["label"] == Term.literal("A", language="en")
        assert "label" not in rows[1]

    def test_request_shape(self):
        """Test the query is form-encoded with the sudo header."""
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"results": {"bindings": []}})

        gateway = make_gateway(handler)
        gateway.query("SELECT ?s WHERE { ?s ?p ?o }")

        assert seen["headers"]["mu-auth-sudo"] == "true"
        assert seen["headers"]["accept"] == "application/sparql-results+json"
        assert seen["form"]["query"] == ["SELECT ?s WHERE { ?s ?p ?o }"]

    def test_without_sudo(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, json={"results": {"bindings": []}})

        make_gateway(handler, sudo=False).query("SELECT * WHERE { ?s ?p ?o }")
        assert "mu-auth-sudo" not in seen["headers"]

    def test_malformed_json(self):
        gateway = make_gateway(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(GatewayError, match="Malformed"):
            gateway.query("SELECT * WHERE { ?s ?p ?o }")


class TestRetries:
    """Tests for retry behavior."""

    def test_retries_then_succeeds(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"results": {"bindings": []}})

        gateway = make_gateway(handler, max_retries=3)
        assert gateway.query("SELECT * WHERE { ?s ?p ?o }") == []
        assert len(calls) == 3

    def test_gives_up(self):
        """Test exhausted retries raise GatewayError with status and query."""
        gateway = make_gateway(lambda request: httpx.Response(500), max_retries=2)
        with pytest.raises(GatewayError) as exc_info:
            gateway.update("INSERT DATA { <http://s> <http://p> <http://o> }")
        assert exc_info.value.status_code == 500
        assert "INSERT DATA" in exc_info.value.query

    def test_client_error_is_not_retried(self):
        """Test a rejected query fails on the first attempt."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, text="Parse error")

        gateway = make_gateway(handler, max_retries=3)
        with pytest.raises(GatewayError) as exc_info:
            gateway.query("SELECT * WHERE { ?s ?p }")
        assert len(calls) == 1
        assert exc_info.value.status_code == 400

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        gateway = make_gateway(handler, max_retries=1)
        with pytest.raises(GatewayError) as exc_info:
            gateway.query("SELECT * WHERE { ?s ?p ?o }")
        assert exc_info.value.status_code is None


class TestUpdateAndConstruct:
    """Tests for updates and CONSTRUCT queries."""

    def test_update_endpoint(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200)

        gateway = make_gateway(handler, update_endpoint="http://database:8890/update")
        gateway.update("CLEAR GRAPH <http://g>")
        assert seen["url"] == "http://database:8890/update"
        assert seen["form"]["update"] == ["CLEAR GRAPH <http://g>"]

    def test_construct_parses_ntriples(self):
        body = (
            '<http://s> <http://p> "x" .\n'
            '<http://s> <http://q> "1"^^<http://www.w3.org/2001/XMLSchema#integer> .\n'
            '<http://s> <http://r> <http://o> .\n'
        )
        gateway = make_gateway(lambda request: httpx.Response(200, text=body))
        quads = gateway.construct("CONSTRUCT { ?s ?p ?o } WHERE { ?s ?p ?o }")

        assert len(quads) == 3
        assert quads[0].object == Term.literal("x")
        assert quads[1].object.datatype == "http://www.w3.org/2001/XMLSchema#integer"
        assert quads[2].object == Term.iri("http://o")
        assert all(q.graph is None for q in quads)

    def test_context_manager_closes_owned_client(self):
        with SparqlGateway(ENDPOINT) as gateway:
            assert gateway.endpoint == ENDPOINT
        assert gateway._client.is_closed
