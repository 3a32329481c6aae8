"""
Columnar batches of quads, decoupled from the network.

A QuadBatch is what the relocation and reconciliation algorithms manipulate
before anything is written: fetched data goes in, gets filtered and split per
graph, and comes out as N-Triples lines for INSERT DATA / DELETE DATA.

Terms are kept in their written form so a batch never has to re-parse them:
- ``object`` is the canonical form used for inserts and lookups
- ``object_explicit`` restates literal datatypes for deletes
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

import polars as pl

from graph_dispatcher.terms import Quad, TermKind, TripleKey

SCHEMA = {
    "subject": pl.Utf8,
    "predicate": pl.Utf8,
    "object": pl.Utf8,
    "object_explicit": pl.Utf8,
    "object_kind": pl.Utf8,
    "graph": pl.Utf8,
}

KEY_COLUMNS = ["subject", "predicate", "object"]
_KEY_SEPARATOR = "\x1f"


def _key_expr() -> pl.Expr:
    return pl.concat_str([pl.col(c) for c in KEY_COLUMNS], separator=_KEY_SEPARATOR)


class QuadBatch:
    """
    Deduplicated, ordered set of quads backed by a Polars DataFrame.

    Batches are immutable: every filtering operation returns a new batch.

    Example:
        batch = QuadBatch.from_quads(quads)
        for graph, part in batch.partition_by_graph().items():
            ...
    """

    def __init__(self, frame: Optional[pl.DataFrame] = None):
        if frame is None:
            frame = pl.DataFrame(schema=SCHEMA)
        self._frame = frame

    @classmethod
    def from_quads(cls, quads: Iterable[Quad], graph: Optional[str] = None) -> "QuadBatch":
        """
        Build a batch from quads.

        Args:
            quads: Quads to add
            graph: If given, overrides the graph of every quad
        """
        rows = []
        for quad in quads:
            quad_graph = graph
            if quad_graph is None and quad.graph is not None:
                quad_graph = quad.graph.value
            rows.append((
                quad.subject.to_sparql(),
                quad.predicate.to_sparql(),
                quad.object.to_sparql(),
                quad.object.to_sparql(explicit=True),
                quad.object.kind.value,
                quad_graph,
            ))
        if not rows:
            return cls()
        frame = pl.DataFrame(rows, schema=SCHEMA, orient="row")
        return cls(frame.unique(maintain_order=True))

    @property
    def frame(self) -> pl.DataFrame:
        return self._frame

    def __len__(self) -> int:
        return self._frame.height

    def is_empty(self) -> bool:
        return self._frame.height == 0

    def subjects(self) -> List[str]:
        """Distinct subjects in order of first appearance."""
        return self._frame.get_column("subject").unique(maintain_order=True).to_list()

    def graphs(self) -> List[str]:
        """Distinct graphs in order of first appearance."""
        return (
            self._frame.get_column("graph")
            .drop_nulls()
            .unique(maintain_order=True)
            .to_list()
        )

    def keys(self) -> List[TripleKey]:
        """Distinct (subject, predicate, object) keys."""
        return self._frame.select(KEY_COLUMNS).unique(maintain_order=True).rows()

    def literals(self) -> "QuadBatch":
        """Only the quads whose object is a literal."""
        return QuadBatch(self._frame.filter(pl.col("object_kind") == TermKind.LITERAL.value))

    def iris(self) -> "QuadBatch":
        """Only the quads whose object is an IRI."""
        return QuadBatch(self._frame.filter(pl.col("object_kind") == TermKind.IRI.value))

    def blank_nodes(self) -> "QuadBatch":
        """Only the quads whose object is a blank node."""
        return QuadBatch(self._frame.filter(pl.col("object_kind") == TermKind.BNODE.value))

    def restrict_to_graph(self, graph: str) -> "QuadBatch":
        return QuadBatch(self._frame.filter(pl.col("graph") == graph))

    def with_graph(self, graph: str) -> "QuadBatch":
        """Same triples, all placed in ``graph``."""
        frame = self._frame.with_columns(pl.lit(graph, dtype=pl.Utf8).alias("graph"))
        return QuadBatch(frame.unique(maintain_order=True))

    def exclude(self, keys: Iterable[TripleKey]) -> "QuadBatch":
        """Drop every quad whose triple is in ``keys``, in any graph."""
        joined = [_KEY_SEPARATOR.join(key) for key in keys]
        if not joined:
            return self
        return QuadBatch(self._frame.filter(~_key_expr().is_in(joined)))

    def partition_by_graph(self) -> Dict[str, "QuadBatch"]:
        """Split into one batch per graph, in order of first appearance."""
        return {graph: self.restrict_to_graph(graph) for graph in self.graphs()}

    def split(self) -> List["QuadBatch"]:
        """One single-quad batch per quad."""
        return [QuadBatch(self._frame.slice(i, 1)) for i in range(self._frame.height)]

    def graphs_per_triple(self) -> Dict[TripleKey, List[str]]:
        """Map every triple to the distinct graphs it occurs in."""
        grouped = (
            self._frame.filter(pl.col("graph").is_not_null())
            .group_by(KEY_COLUMNS, maintain_order=True)
            .agg(pl.col("graph").unique(maintain_order=True).alias("graphs"))
        )
        return {
            (row["subject"], row["predicate"], row["object"]): row["graphs"]
            for row in grouped.iter_rows(named=True)
        }

    def concat(self, other: "QuadBatch") -> "QuadBatch":
        if other.is_empty():
            return self
        if self.is_empty():
            return other
        return QuadBatch(pl.concat([self._frame, other.frame]).unique(maintain_order=True))

    def triples(self, explicit: bool = False) -> List[str]:
        """
        N-Triples lines for every quad (graph ignored).

        Args:
            explicit: Write literal objects with their datatype restated.
        """
        object_column = "object_explicit" if explicit else "object"
        return [
            f"{s} {p} {o} ."
            for s, p, o in self._frame.select(["subject", "predicate", object_column]).iter_rows()
        ]

    def __repr__(self) -> str:
        return f"QuadBatch({len(self)} quads, {len(self.graphs())} graphs)"
