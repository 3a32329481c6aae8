"""
RDF term and quad value objects.

Terms arrive in two JSON shapes that share one layout: SPARQL 1.1 JSON result
bindings and delta-notifier triples. Both are parsed here and written back out
in N-Triples syntax for embedding in SPARQL text.

Two write forms exist for literals:
- canonical: ``"x"`` for ``xsd:string`` literals, as any RDF writer would do
- explicit: ``"x"^^xsd:string`` always restating the datatype, which some
  stores require to match a triple in ``DELETE DATA``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from graph_dispatcher.namespaces import RDF_LANG_STRING, XSD_STRING


class TermKind(Enum):
    """RDF term kind."""
    IRI = "iri"
    BNODE = "bnode"
    LITERAL = "literal"


_LITERAL_ESCAPES = str.maketrans({
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
})


@dataclass(frozen=True, slots=True)
class Term:
    """
    An RDF term.

    Attributes:
        kind: IRI, BNODE or LITERAL
        value: IRI string, blank node label or lexical form
        datatype: Datatype IRI (literals only, normalized to xsd:string or
            rdf:langString when absent)
        language: Language tag (literals only)
    """
    kind: TermKind
    value: str
    datatype: Optional[str] = None
    language: Optional[str] = None

    @classmethod
    def iri(cls, value: str) -> "Term":
        """Create an IRI term."""
        return cls(kind=TermKind.IRI, value=value)

    @classmethod
    def bnode(cls, label: str) -> "Term":
        """Create a blank node term."""
        return cls(kind=TermKind.BNODE, value=label)

    @classmethod
    def literal(
        cls,
        value: str,
        datatype: Optional[str] = None,
        language: Optional[str] = None,
    ) -> "Term":
        """Create a literal term."""
        if language:
            return cls(kind=TermKind.LITERAL, value=value,
                       datatype=RDF_LANG_STRING, language=language.lower())
        return cls(kind=TermKind.LITERAL, value=value, datatype=datatype or XSD_STRING)

    @classmethod
    def from_binding(cls, binding: Dict[str, Any]) -> "Term":
        """
        Parse a term from a SPARQL JSON binding or a delta-notifier term.

        Raises:
            ValueError: If the term type is unknown.
        """
        term_type = binding.get("type")
        value = binding.get("value")
        if value is None:
            raise ValueError(f"Term without value: {binding!r}")
        if term_type == "uri":
            return cls.iri(value)
        if term_type == "bnode":
            return cls.bnode(value)
        if term_type in ("literal", "typed-literal"):
            return cls.literal(value, binding.get("datatype"), binding.get("xml:lang"))
        raise ValueError(f"Unknown term type {term_type!r}")

    @property
    def is_literal(self) -> bool:
        return self.kind == TermKind.LITERAL

    def to_sparql(self, explicit: bool = False) -> str:
        """
        Write the term in N-Triples syntax.

        Args:
            explicit: Always restate the datatype of literals, including
                ``xsd:string``.
        """
        if self.kind == TermKind.IRI:
            return f"<{self.value}>"
        if self.kind == TermKind.BNODE:
            return f"_:{self.value}"
        lexical = '"' + self.value.translate(_LITERAL_ESCAPES) + '"'
        if self.language:
            return f"{lexical}@{self.language}"
        if self.datatype == XSD_STRING and not explicit:
            return lexical
        return f"{lexical}^^<{self.datatype or XSD_STRING}>"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in SPARQL JSON binding shape."""
        if self.kind == TermKind.IRI:
            return {"type": "uri", "value": self.value}
        if self.kind == TermKind.BNODE:
            return {"type": "bnode", "value": self.value}
        data: Dict[str, Any] = {"type": "literal", "value": self.value}
        if self.language:
            data["xml:lang"] = self.language
        else:
            data["datatype"] = self.datatype
        return data

    def __str__(self) -> str:
        return self.to_sparql()


TripleKey = Tuple[str, str, str]


@dataclass(frozen=True, slots=True)
class Quad:
    """A triple with the graph it was observed in."""
    subject: Term
    predicate: Term
    object: Term
    graph: Optional[Term] = None

    @classmethod
    def from_delta(cls, data: Dict[str, Any]) -> "Quad":
        """Parse one triple of a delta-notifier changeset."""
        graph = data.get("graph")
        return cls(
            subject=Term.from_binding(data["subject"]),
            predicate=Term.from_binding(data["predicate"]),
            object=Term.from_binding(data["object"]),
            graph=Term.from_binding(graph) if graph else None,
        )

    @property
    def key(self) -> TripleKey:
        """Identity of the triple regardless of the graph."""
        return (
            self.subject.to_sparql(),
            self.predicate.to_sparql(),
            self.object.to_sparql(),
        )

    @property
    def has_blank_node(self) -> bool:
        """Blank nodes cannot be named in VALUES or DELETE DATA."""
        return TermKind.BNODE in (self.subject.kind, self.object.kind)

    def in_graph(self, graph: Optional[Term]) -> "Quad":
        return Quad(self.subject, self.predicate, self.object, graph)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "subject": self.subject.to_dict(),
            "predicate": self.predicate.to_dict(),
            "object": self.object.to_dict(),
        }
        if self.graph is not None:
            data["graph"] = self.graph.to_dict()
        return data


@dataclass
class Changeset:
    """One delta notification: triples inserted and deleted together."""
    inserts: List[Quad] = field(default_factory=list)
    deletes: List[Quad] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Changeset":
        return cls(
            inserts=[Quad.from_delta(t) for t in data.get("inserts") or []],
            deletes=[Quad.from_delta(t) for t in data.get("deletes") or []],
        )
