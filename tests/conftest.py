"""Shared fixtures: an in-memory triplestore behind the gateway interface."""

from typing import List, Optional, Set, Tuple

import pytest
from pyoxigraph import NamedNode, Store

from graph_dispatcher.gateway import GatewayError, term_from_oxigraph
from graph_dispatcher.paths import PathTemplate
from graph_dispatcher.settings import DispatcherSettings
from graph_dispatcher.terms import Quad, Term

EX = "http://example.org/"
MANDATARIS = "http://data.lblod.info/vocabularies/erediensten/EredienstMandataris"
ROL_BEDIENAAR = "http://data.lblod.info/vocabularies/erediensten/RolBedienaar"
OWNER = f"{EX}owner"
ORG_PREFIX = "http://mu.semte.ch/graphs/organizations/"
INSERT_GRAPH = "http://eredienst-mandatarissen-consumer/temp-inserts"
DELETE_GRAPH = "http://eredienst-mandatarissen-consumer/temp-deletes"
UNIT_GRAPH = "http://mu.semte.ch/graphs/public"


class StoreGateway:
    """
    Gateway over an in-memory Oxigraph store.

    Records every query and update in the order it was sent. Data loaded
    through ``load`` is not recorded.
    """

    def __init__(self):
        self.store = Store()
        self.queries: List[str] = []
        self.updates: List[str] = []
        self.fail_on: Optional[str] = None

    def _check(self, text: str) -> None:
        if self.fail_on is not None and self.fail_on in text:
            raise GatewayError("Simulated failure", status_code=500, query=text)

    def query(self, text):
        self.queries.append(text)
        self._check(text)
        solutions = self.store.query(text, use_default_graph_as_union=True)
        names = [v.value for v in solutions.variables]
        rows = []
        for solution in solutions:
            row = {}
            for name in names:
                term = solution[name]
                if term is not None:
                    row[name] = term_from_oxigraph(term)
            rows.append(row)
        return rows

    def construct(self, text):
        self.queries.append(text)
        self._check(text)
        return [
            Quad(
                term_from_oxigraph(t.subject),
                term_from_oxigraph(t.predicate),
                term_from_oxigraph(t.object),
            )
            for t in self.store.query(text, use_default_graph_as_union=True)
        ]

    def update(self, text):
        self.updates.append(text)
        self._check(text)
        self.store.update(text)

    def load(self, graph: str, triples: str) -> None:
        """Insert N-Triples text into ``graph``."""
        self.store.update(f"INSERT DATA {{ GRAPH <{graph}> {{ {triples} }} }}")

    def triples(self, graph: str) -> Set[Tuple[str, str, str]]:
        """Triples of ``graph`` in N-Triples syntax."""
        return {
            (str(q.subject), str(q.predicate), str(q.object))
            for q in self.store.quads_for_pattern(None, None, None, NamedNode(graph))
        }

    def reset_log(self) -> None:
        self.queries.clear()
        self.updates.clear()


def staged(subject: str, predicate: str, obj: Term, graph: str) -> Quad:
    """A quad as it arrives in a delta notification."""
    return Quad(Term.iri(subject), Term.iri(predicate), obj, Term.iri(graph))


@pytest.fixture
def gateway():
    return StoreGateway()


@pytest.fixture
def settings():
    return DispatcherSettings(retry_delay_seconds=3600, scan_on_boot=False)


@pytest.fixture
def templates():
    return [
        PathTemplate(type=MANDATARIS, pattern=f"?subject <{OWNER}> ?organizationUnit ."),
        PathTemplate(
            type=MANDATARIS,
            pattern=f"?subject <{EX}via> ?link . ?link <{OWNER}> ?organizationUnit .",
        ),
    ]


@pytest.fixture
def organizations(gateway):
    """Two organization units with uuids ``abc`` and ``def``."""
    gateway.load(UNIT_GRAPH, f"""
        <{EX}unit/abc> <http://mu.semte.ch/vocabularies/core/uuid> "abc" .
        <{EX}unit/def> <http://mu.semte.ch/vocabularies/core/uuid> "def" .
    """)
    return {"abc": f"{EX}unit/abc", "def": f"{EX}unit/def"}
