"""
Organization resolution: which organization units own a subject.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set

from graph_dispatcher import queries
from graph_dispatcher.gateway import Gateway
from graph_dispatcher.paths import PathTemplate
from graph_dispatcher.terms import Term

logger = logging.getLogger(__name__)


class OrganizationResolver:
    """
    Evaluates every path template of a type and unions the UUIDs found.

    The result is a set, so the order in which templates are evaluated does
    not matter and a UUID reached through two chains counts once.
    """

    def __init__(self, gateway: Gateway, templates: Sequence[PathTemplate]):
        self._gateway = gateway
        self._templates: Dict[str, List[PathTemplate]] = {}
        for template in templates:
            self._templates.setdefault(template.type, []).append(template)

    def templates_for(self, type_iri: str) -> List[PathTemplate]:
        return list(self._templates.get(type_iri, []))

    def resolve(self, subject: Term, type_: Term) -> Set[str]:
        """
        Find the UUIDs of the organization units owning ``subject``.

        Returns:
            The distinct UUIDs; empty when no template matches the type or no
            chain is complete yet.
        """
        uuids: Set[str] = set()
        for template in self._templates.get(type_.value, []):
            rows = self._gateway.query(queries.organization_uuids(subject, template.pattern))
            uuids.update(
                row["organizationUUID"].value for row in rows if "organizationUUID" in row
            )
        logger.debug(f"Resolved {subject} ({type_}) to organizations {sorted(uuids)}")
        return uuids
