"""
SPARQL text for every query and update the dispatcher issues.

Everything here is a pure function of its arguments so the engines can be
tested by inspecting the text they send.
"""

from __future__ import annotations

from typing import Iterable, List

from graph_dispatcher.namespaces import SPARQL_PREFIXES
from graph_dispatcher.quads import QuadBatch
from graph_dispatcher.terms import Term, TripleKey


def _iri(value: str) -> str:
    return f"<{value}>"


def types_for_subjects(subjects: Iterable[Term]) -> str:
    """Types of the given subjects, looked up in every graph."""
    values = " ".join(subject.to_sparql() for subject in subjects)
    return f"""
{SPARQL_PREFIXES}
SELECT DISTINCT ?subject ?type WHERE {{
  ?subject rdf:type ?type .
  VALUES ?subject {{
    {values}
  }}
}}"""


def staged_subjects_with_types(insert_graph: str) -> str:
    """Every subject in the insert staging graph with its type (from any graph)."""
    return f"""
{SPARQL_PREFIXES}
SELECT DISTINCT ?subject ?type WHERE {{
  GRAPH {_iri(insert_graph)} {{
    ?subject ?p ?o .
  }}
  ?subject rdf:type ?type .
}}"""


def graphs_for_triples(keys: Iterable[TripleKey]) -> str:
    """Every graph each of the given triples occurs in."""
    values = "\n    ".join(f"({s} {p} {o})" for s, p, o in keys)
    return f"""
SELECT ?s ?p ?o ?g WHERE {{
  VALUES (?s ?p ?o) {{
    {values}
  }}
  GRAPH ?g {{
    ?s ?p ?o .
  }}
}}"""


def organization_uuids(subject: Term, pattern: str) -> str:
    """
    UUIDs of the organization units reached from ``subject`` by ``pattern``.

    The pattern receives ``?subject`` and has to bind ``?organizationUnit``.
    """
    return f"""
{SPARQL_PREFIXES}
SELECT DISTINCT ?organizationUUID WHERE {{
  BIND ({subject.to_sparql()} AS ?subject) .
  {pattern.strip()}
  ?organizationUnit mu:uuid ?organizationUUID .
}}"""


def subject_data(subject: Term, graph: str) -> str:
    """All predicate/object pairs of ``subject`` inside ``graph``."""
    return f"""
SELECT ?p ?o WHERE {{
  GRAPH {_iri(graph)} {{
    {subject.to_sparql()} ?p ?o .
  }}
}}"""


def graph_data(graph: str) -> str:
    """
    Every triple inside ``graph``.

    Raises:
        ValueError: When no graph is given; that would select the whole store.
    """
    if not graph:
        raise ValueError(
            "Querying without a graph would select the entire store and is not allowed"
        )
    return f"""
SELECT ?s ?p ?o WHERE {{
  GRAPH {_iri(graph)} {{
    ?s ?p ?o .
  }}
}}"""


def insert_data(batch: QuadBatch, graph: str) -> str:
    """INSERT DATA for every triple of ``batch`` into ``graph``."""
    return _data_update("INSERT", batch.triples(), graph)


def delete_data(batch: QuadBatch, graph: str) -> str:
    """
    DELETE DATA for every triple of ``batch`` from ``graph``.

    Literals are written with their datatype restated, so the statement
    matches triples that were asserted with an explicit ``xsd:string``.
    """
    return _data_update("DELETE", batch.triples(explicit=True), graph)


def delete_blank_objects(subject: Term, graph: str) -> str:
    """
    Remove the triples of ``subject`` in ``graph`` whose object is a blank node.

    Blank nodes cannot be named in DELETE DATA, so they are matched by pattern.
    """
    return f"""
DELETE {{
  GRAPH {_iri(graph)} {{
    {subject.to_sparql()} ?p ?o .
  }}
}}
WHERE {{
  GRAPH {_iri(graph)} {{
    {subject.to_sparql()} ?p ?o .
    FILTER(isBlank(?o))
  }}
}}"""


def _data_update(operation: str, triples: List[str], graph: str) -> str:
    body = "\n    ".join(triples)
    return f"""
{operation} DATA {{
  GRAPH {_iri(graph)} {{
    {body}
  }}
}}"""
