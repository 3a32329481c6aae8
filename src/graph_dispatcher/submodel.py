"""
Extraction queries for a subject and everything that travels with it.

For a subject of a given type, the model node declaring that type is looked
up and one CONSTRUCT query is built per node of its subtree. Each query walks
the relation chain from the subject down to that node, requires every node on
the way to carry its declared type and to be associated with the given data
contributor, and returns the outgoing triples of the last node.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from graph_dispatcher.gateway import ConstructGateway
from graph_dispatcher.model import ModelArena, ModelNode
from graph_dispatcher.namespaces import PREFIXES, PROV_WAS_ASSOCIATED_WITH
from graph_dispatcher.quads import QuadBatch
from graph_dispatcher.symbols import SymbolGenerator
from graph_dispatcher.terms import Term

logger = logging.getLogger(__name__)

VARIABLE_PREFIX = "?v"


class SubmodelQuerySynthesizer:
    """Builds and runs submodel extraction queries."""

    def __init__(
        self,
        arena: ModelArena,
        symbols: SymbolGenerator,
        gateway: Optional[ConstructGateway] = None,
    ):
        self.arena = arena
        self.symbols = symbols
        self._gateway = gateway

    def create_query_for_path(self, path: List[ModelNode], subject: Term, contributor: Term) -> str:
        """
        CONSTRUCT query for the outgoing triples of the last node on ``path``.

        Args:
            path: Model nodes from the subject's node down to the target node
            subject: The concrete subject bound to the first node
            contributor: Only nodes associated with this agent are followed
        """
        if not path:
            raise ValueError("Cannot build a query for an empty path")

        chain = [self.symbols.next(VARIABLE_PREFIX) for _ in path]
        where = [f"BIND ({subject.to_sparql()} as {chain[0]})"]

        for i in range(1, len(path)):
            where.append(f"{chain[i - 1]} <{path[i].relation}> {chain[i]} .")
        for variable, node in zip(chain, path):
            where.append(f"{variable} rdf:type <{node.type}> .")
            where.append(f"{variable} <{PROV_WAS_ASSOCIATED_WITH}> {contributor.to_sparql()} .")

        last_p = self.symbols.next(VARIABLE_PREFIX)
        last_o = self.symbols.next(VARIABLE_PREFIX)
        last_triple = f"{chain[-1]} {last_p} {last_o} ."
        where.append(last_triple)

        where_block = "\n  ".join(where)
        return f"""PREFIX rdf: <{PREFIXES['rdf']}>

CONSTRUCT {{
  {last_triple}
}}
WHERE {{
  {where_block}
}}
"""

    def create_queries_for_submodel(self, subject: Term, type_: Term, contributor: Term) -> List[str]:
        """
        One query per node of the subtree under ``type_``.

        Returns:
            An empty list when no model node declares ``type_``.
        """
        top = self.arena.find_node_for_type(type_.value)
        if top is None:
            return []
        return [
            self.create_query_for_path(self.arena.path_between(top, node), subject, contributor)
            for node in self.arena.subtree_flat(top)
        ]

    def get_submodel_data(self, subject: Term, type_: Term, contributor: Term) -> QuadBatch:
        """Run every submodel query and merge the results."""
        if self._gateway is None:
            raise RuntimeError("A gateway is required to fetch submodel data")

        data = QuadBatch()
        for query in self.create_queries_for_submodel(subject, type_, contributor):
            data = data.concat(QuadBatch.from_quads(self._gateway.construct(query)))
        logger.info(f"Fetched {len(data)} submodel triples for {subject}")
        return data
