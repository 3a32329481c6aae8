"""
Delete reconciliation: remove deleted triples from wherever they ended up.

A delete notification does not say which organization graph holds the
triple, so every graph containing it is looked up. A triple found in exactly
one organization graph is removed from all graphs it was found in, staging
graphs included. A triple found in more than one organization graph cannot be
attributed to a single tenant and is left untouched everywhere, including in
the delete staging graph, so it can be inspected later.

Triples with a blank node subject or object are reported and left alone as
well: a blank node label is local to one query result, so the same triple
cannot be looked up in other graphs.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from graph_dispatcher import queries
from graph_dispatcher.gateway import Gateway
from graph_dispatcher.quads import QuadBatch
from graph_dispatcher.results import (
    REASON_BLANK_NODE,
    REASON_MULTIPLE_ORGANIZATION_GRAPHS,
    DispatchMode,
    DispatchResult,
)
from graph_dispatcher.settings import DispatcherSettings
from graph_dispatcher.terms import Quad, Term, TripleKey

logger = logging.getLogger(__name__)


class DeleteReconciler:
    """Removes staged deletes from every graph they can safely be attributed to."""

    def __init__(self, gateway: Gateway, settings: DispatcherSettings):
        self._gateway = gateway
        self._settings = settings

    def process_deletes(self, deletes: Iterable[Quad]) -> List[DispatchResult]:
        """
        Reconcile deleted triples from a notification.

        Only triples in the delete staging graph are considered.
        """
        delete_graph = self._settings.delete_graph
        staged = [q for q in deletes if q.graph is not None and q.graph.value == delete_graph]
        if not staged:
            return [DispatchResult.nothing_to_process(DispatchMode.DELETE)]
        return self.reconcile(staged)

    def scan(self) -> List[DispatchResult]:
        """Reconcile everything currently in the delete staging graph."""
        delete_graph = self._settings.delete_graph
        rows = self._gateway.query(queries.graph_data(delete_graph))
        graph = Term.iri(delete_graph)
        staged = [Quad(row["s"], row["p"], row["o"], graph) for row in rows]
        if not staged:
            return [DispatchResult.nothing_to_process(DispatchMode.DELETE)]
        return self.reconcile(staged)

    def find_graphs(self, triples: Sequence[Quad]) -> QuadBatch:
        """Every occurrence of the given triples, one quad per graph."""
        keys = list(dict.fromkeys(q.key for q in triples))
        if not keys:
            return QuadBatch()
        rows = self._gateway.query(queries.graphs_for_triples(keys))
        return QuadBatch.from_quads(
            Quad(row["s"], row["p"], row["o"], row["g"]) for row in rows
        )

    def reconcile(self, staged: Sequence[Quad]) -> List[DispatchResult]:
        """
        Delete ``staged`` triples everywhere unless they are ambiguous.

        Returns:
            Results for the triples that were left alone; successful deletes
            are not reported individually.
        """
        named = [q for q in staged if not q.has_blank_node]
        occurrences = self.find_graphs(named)
        graphs_per_triple = occurrences.graphs_per_triple()

        results: List[DispatchResult] = []
        problematic: List[TripleKey] = []
        seen = set()

        for quad in staged:
            key = quad.key
            if key in seen:
                continue
            seen.add(key)

            if quad.has_blank_node:
                logger.warning(f"Not removing {' '.join(key)}: it contains a blank node")
                results.append(DispatchResult(
                    success=False,
                    mode=DispatchMode.DELETE,
                    reason=REASON_BLANK_NODE,
                    triple=quad,
                ))
                continue

            organization_graphs = [
                g for g in graphs_per_triple.get(key, [])
                if self._settings.is_organization_graph(g)
            ]
            if len(organization_graphs) > 1:
                logger.warning(
                    f"Not removing {' '.join(key)}: found in {len(organization_graphs)} "
                    f"organisation graphs"
                )
                problematic.append(key)
                results.append(DispatchResult(
                    success=False,
                    mode=DispatchMode.DELETE,
                    reason=REASON_MULTIPLE_ORGANIZATION_GRAPHS,
                    triple=quad,
                    graphs=organization_graphs,
                ))

        removable = occurrences.exclude(problematic)
        for graph, part in removable.partition_by_graph().items():
            self._gateway.update(queries.delete_data(part, graph))
            logger.info(f"Deleted {len(part)} triples from <{graph}>")

        return results
