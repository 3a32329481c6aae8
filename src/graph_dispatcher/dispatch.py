"""
Insert dispatching: move staged subjects into their organization graph.

Staged subjects whose chain to an organization is not complete yet stay in
the insert staging graph. Every successful move may complete the chain of
another staged subject, so after a cycle that moved something a retry of the
whole staging graph is scheduled (debounced: one trailing retry per burst).
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from graph_dispatcher import queries
from graph_dispatcher.gateway import Gateway
from graph_dispatcher.relocation import GraphRelocator
from graph_dispatcher.resolver import OrganizationResolver
from graph_dispatcher.results import (
    REASON_MOVED,
    REASON_NO_ORGANIZATION,
    REASON_TOO_MANY_ORGANIZATIONS,
    DispatchMode,
    DispatchResult,
)
from graph_dispatcher.scheduler import DebouncedScheduler
from graph_dispatcher.settings import DispatcherSettings
from graph_dispatcher.terms import Quad, Term, TermKind

logger = logging.getLogger(__name__)

SubjectType = Tuple[Term, Term]


class InsertDispatcher:
    """Resolves ownership of staged subjects and relocates them."""

    def __init__(
        self,
        gateway: Gateway,
        resolver: OrganizationResolver,
        relocator: GraphRelocator,
        settings: DispatcherSettings,
        scheduler: Optional[DebouncedScheduler] = None,
    ):
        self._gateway = gateway
        self._resolver = resolver
        self._relocator = relocator
        self._settings = settings
        self.scheduler = scheduler

    def process_inserts(self, inserts: Iterable[Quad]) -> List[DispatchResult]:
        """
        Dispatch the subjects of inserted triples.

        Only triples in the insert staging graph are considered; anything else
        in the notification is ignored.
        """
        insert_graph = self._settings.insert_graph
        staged = [q for q in inserts if q.graph is not None and q.graph.value == insert_graph]
        if not staged:
            return [DispatchResult.nothing_to_process(DispatchMode.INSERT)]

        subjects = list(dict.fromkeys(q.subject for q in staged))
        return self.dispatch(self.types_for_subjects(subjects))

    def scan(self) -> List[DispatchResult]:
        """Dispatch every subject currently in the insert staging graph."""
        rows = self._gateway.query(queries.staged_subjects_with_types(self._settings.insert_graph))
        pairs = [(row["subject"], row["type"]) for row in rows if "subject" in row and "type" in row]
        if not pairs:
            return [DispatchResult.nothing_to_process(DispatchMode.INSERT)]

        named = [(subject, type_) for subject, type_ in pairs if subject.kind == TermKind.IRI]
        if len(named) < len(pairs):
            skipped = {subject for subject, _ in pairs if subject.kind != TermKind.IRI}
            logger.info(f"Skipping {len(skipped)} blank node subjects")
        return self.dispatch(named)

    def types_for_subjects(self, subjects: Sequence[Term]) -> List[SubjectType]:
        """
        Look up the types of ``subjects`` in any graph.

        Subjects without a type are dropped. Pairs come back grouped in the
        order of ``subjects``.
        """
        named = [s for s in subjects if s.kind == TermKind.IRI]
        if len(named) < len(subjects):
            logger.info(f"Skipping {len(subjects) - len(named)} blank node subjects")
        if not named:
            return []

        rows = self._gateway.query(queries.types_for_subjects(named))
        order = {subject: index for index, subject in enumerate(named)}
        pairs = [
            (row["subject"], row["type"])
            for row in rows
            if row.get("subject") in order and "type" in row
        ]
        pairs.sort(key=lambda pair: order[pair[0]])
        return pairs

    def dispatch(self, pairs: Iterable[SubjectType]) -> List[DispatchResult]:
        """Resolve and relocate each (subject, type) pair."""
        results: List[DispatchResult] = []
        relocated = False

        for subject, type_ in pairs:
            uuids = self._resolver.resolve(subject, type_)

            if len(uuids) > 1:
                logger.warning(
                    f"{subject} ({type_}) resolves to {len(uuids)} organisations: {sorted(uuids)}"
                )
                results.append(DispatchResult(
                    success=False,
                    mode=DispatchMode.INSERT,
                    reason=REASON_TOO_MANY_ORGANIZATIONS,
                    subject=subject,
                    type=type_,
                    organization_uuids=sorted(uuids),
                ))
            elif len(uuids) == 1:
                organization_graph = self._settings.organization_graph(next(iter(uuids)))
                self._relocator.relocate(subject, self._settings.insert_graph, organization_graph)
                relocated = True
                results.append(DispatchResult(
                    success=True,
                    mode=DispatchMode.INSERT,
                    reason=REASON_MOVED,
                    subject=subject,
                    type=type_,
                    organization_graph=organization_graph,
                ))
            else:
                results.append(DispatchResult(
                    success=False,
                    mode=DispatchMode.INSERT,
                    reason=REASON_NO_ORGANIZATION,
                    subject=subject,
                    type=type_,
                ))

        if relocated and self.scheduler is not None:
            self.scheduler.schedule()
        return results
