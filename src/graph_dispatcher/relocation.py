"""
Moving all triples of a subject from one graph to another.

A single ``DELETE { ... } INSERT { ... } WHERE { ... }`` would be the obvious
way to do this, but Virtuoso behind mu-authorization silently leaves typed
literals behind in the source graph. The move is therefore done in steps:

1. fetch the subject's triples from the source graph
2. insert all of them into the target graph in one update
3. delete the IRI-object triples from the source graph in one update
4. delete the blank-node-object triples by pattern, since DELETE DATA cannot
   name blank nodes
5. delete every literal triple on its own, with its datatype restated
"""

from __future__ import annotations

import logging

from graph_dispatcher import queries
from graph_dispatcher.gateway import Gateway
from graph_dispatcher.quads import QuadBatch
from graph_dispatcher.terms import Quad, Term

logger = logging.getLogger(__name__)


class GraphRelocator:
    """Moves subjects between named graphs."""

    def __init__(self, gateway: Gateway):
        self._gateway = gateway

    def fetch_subject(self, subject: Term, graph: str) -> QuadBatch:
        """All triples of ``subject`` inside ``graph``."""
        rows = self._gateway.query(queries.subject_data(subject, graph))
        source = Term.iri(graph)
        return QuadBatch.from_quads(
            Quad(subject, row["p"], row["o"], source) for row in rows
        )

    def insert(self, batch: QuadBatch, graph: str) -> None:
        if not batch.is_empty():
            self._gateway.update(queries.insert_data(batch, graph))

    def delete(self, batch: QuadBatch, graph: str) -> None:
        if not batch.is_empty():
            self._gateway.update(queries.delete_data(batch, graph))

    def relocate(self, subject: Term, from_graph: str, to_graph: str) -> int:
        """
        Move every triple of ``subject`` from ``from_graph`` to ``to_graph``.

        Returns:
            Number of triples moved.
        """
        data = self.fetch_subject(subject, from_graph)
        if data.is_empty():
            logger.info(f"Nothing to move for {subject} in <{from_graph}>")
            return 0

        self.insert(data, to_graph)
        self.delete(data.iris(), from_graph)
        if not data.blank_nodes().is_empty():
            self._gateway.update(queries.delete_blank_objects(subject, from_graph))

        for literal in data.literals().split():
            self.delete(literal, from_graph)

        logger.info(f"Moved {len(data)} triples of {subject} from <{from_graph}> to <{to_graph}>")
        return len(data)
