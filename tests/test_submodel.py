"""Tests for submodel query synthesis and data retrieval."""

import pytest

from graph_dispatcher.model import load_model
from graph_dispatcher.settings import DATA_DIR
from graph_dispatcher.submodel import SubmodelQuerySynthesizer
from graph_dispatcher.symbols import SymbolGenerator
from graph_dispatcher.terms import Term

from conftest import MANDATARIS, StoreGateway

SUBJECT = Term.iri("http://subject/uri")
VENDOR = Term.iri("http://vendor/uri")

PREFIX = "PREFIX rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#>"
ASSOC = "<http://www.w3.org/ns/prov#wasAssociatedWith> <http://vendor/uri>"
ERE = "<http://data.lblod.info/vocabularies/erediensten/EredienstMandataris>"
PERSON = "<http://www.w3.org/ns/person#Person>"
GEBOORTE = "<https://data.vlaanderen.be/ns/persoon#Geboorte>"
IDENTIFIER = "<http://www.w3.org/ns/adms#Identifier>"
CONTACT = "<http://schema.org/ContactPoint>"
ADDRESS = "<http://www.w3.org/ns/locn#Address>"
ALIAS = "<http://data.vlaanderen.be/ns/mandaat#isBestuurlijkeAliasVan>"
BIRTH = "<https://data.vlaanderen.be/ns/persoon#heeftGeboorte>"
ADMS_ID = "<http://www.w3.org/ns/adms#identifier>"
CONTACT_POINT = "<http://schema.org/contactPoint>"
LOCN_ADDRESS = "<http://www.w3.org/ns/locn#address>"


def normalize(text):
    return " ".join(text.split())


def node_constraints(variable, type_iri):
    return f"{variable} rdf:type {type_iri} . {variable} {ASSOC} ."


@pytest.fixture
def arena():
    return load_model(DATA_DIR / "model.yaml")


@pytest.fixture
def synthesizer(arena):
    return SubmodelQuerySynthesizer(arena, SymbolGenerator())


class TestCreateQueryForPath:
    """Tests for a single extraction query."""

    def test_path_of_one(self, synthesizer, arena):
        m0 = arena.roots[0]
        query = synthesizer.create_query_for_path(arena.path_between(m0, m0), SUBJECT, VENDOR)
        assert normalize(query) == (
            f"{PREFIX} CONSTRUCT {{ ?v1 ?v2 ?v3 . }} WHERE {{ "
            f"BIND (<http://subject/uri> as ?v1) "
            f"{node_constraints('?v1', ERE)} "
            f"?v1 ?v2 ?v3 . }}"
        )

    def test_path_of_two(self, synthesizer, arena):
        m0 = arena.roots[0]
        c0 = arena.children(m0)[0]
        query = synthesizer.create_query_for_path(arena.path_between(m0, c0), SUBJECT, VENDOR)
        assert normalize(query) == (
            f"{PREFIX} CONSTRUCT {{ ?v2 ?v3 ?v4 . }} WHERE {{ "
            f"BIND (<http://subject/uri> as ?v1) "
            f"?v1 {ALIAS} ?v2 . "
            f"{node_constraints('?v1', ERE)} "
            f"{node_constraints('?v2', PERSON)} "
            f"?v2 ?v3 ?v4 . }}"
        )

    def test_path_of_three(self, synthesizer, arena):
        m0 = arena.roots[0]
        leaf = arena.children(arena.children(m0)[0])[0]
        query = synthesizer.create_query_for_path(arena.path_between(m0, leaf), SUBJECT, VENDOR)
        assert normalize(query) == (
            f"{PREFIX} CONSTRUCT {{ ?v3 ?v4 ?v5 . }} WHERE {{ "
            f"BIND (<http://subject/uri> as ?v1) "
            f"?v1 {ALIAS} ?v2 . "
            f"?v2 {BIRTH} ?v3 . "
            f"{node_constraints('?v1', ERE)} "
            f"{node_constraints('?v2', PERSON)} "
            f"{node_constraints('?v3', GEBOORTE)} "
            f"?v3 ?v4 ?v5 . }}"
        )

    def test_empty_path(self, synthesizer):
        with pytest.raises(ValueError):
            synthesizer.create_query_for_path([], SUBJECT, VENDOR)


class TestCreateQueriesForSubmodel:
    """Tests for the queries of a whole submodel."""

    def test_top_level(self, synthesizer):
        """Test one query per node, in flattened order, sharing one counter."""
        queries = [
            normalize(q)
            for q in synthesizer.create_queries_for_submodel(
                SUBJECT, Term.iri(MANDATARIS), VENDOR
            )
        ]
        assert len(queries) == 6
        assert queries[0].startswith(f"{PREFIX} CONSTRUCT {{ ?v1 ?v2 ?v3 . }}")
        assert f"BIND (<http://subject/uri> as ?v4) ?v4 {ALIAS} ?v5 ." in queries[1]
        assert f"BIND (<http://subject/uri> as ?v8) ?v8 {CONTACT_POINT} ?v9 ." in queries[2]
        assert f"?v12 {ALIAS} ?v13 . ?v13 {BIRTH} ?v14 ." in queries[3]
        assert f"?v17 {ALIAS} ?v18 . ?v18 {ADMS_ID} ?v19 ." in queries[4]
        assert f"{node_constraints('?v19', IDENTIFIER)}" in queries[4]
        assert f"?v22 {CONTACT_POINT} ?v23 . ?v23 {LOCN_ADDRESS} ?v24 ." in queries[5]
        assert f"{node_constraints('?v23', CONTACT)}" in queries[5]
        assert queries[5].endswith(f"{node_constraints('?v24', ADDRESS)} ?v24 ?v25 ?v26 . }}")

    def test_sub_tree(self, synthesizer):
        queries = synthesizer.create_queries_for_submodel(
            SUBJECT, Term.iri("http://schema.org/ContactPoint"), VENDOR
        )
        assert len(queries) == 2
        assert f"BIND (<http://subject/uri> as ?v1) {node_constraints('?v1', CONTACT)}" in normalize(queries[0])

    def test_unknown_type(self, synthesizer):
        assert synthesizer.create_queries_for_submodel(
            SUBJECT, Term.iri("http://example.org/Unknown"), VENDOR
        ) == []


class TestGetSubmodelData:
    """Tests for running submodel queries against a store."""

    def test_collects_owned_data(self, arena):
        gateway = StoreGateway()
        gateway.load("http://mu.semte.ch/graphs/organizations/abc", f"""
            <http://subject/uri> a {ERE} ;
                {ALIAS} <http://person/1> ;
                <http://www.w3.org/ns/prov#wasAssociatedWith> <http://vendor/uri> .
            <http://person/1> a {PERSON} ;
                <http://xmlns.com/foaf/0.1/name> "Jan" ;
                <http://www.w3.org/ns/prov#wasAssociatedWith> <http://vendor/uri> .
            <http://person/2> a {PERSON} ;
                <http://xmlns.com/foaf/0.1/name> "Piet" .
        """)
        synthesizer = SubmodelQuerySynthesizer(arena, SymbolGenerator(), gateway)

        data = synthesizer.get_submodel_data(SUBJECT, Term.iri(MANDATARIS), VENDOR)
        subjects = data.subjects()

        assert "<http://subject/uri>" in subjects
        assert "<http://person/1>" in subjects
        assert "<http://person/2>" not in subjects
        assert len(gateway.queries) == 6
        assert len(data) == 6

    def test_requires_gateway(self, synthesizer):
        with pytest.raises(RuntimeError):
            synthesizer.get_submodel_data(SUBJECT, Term.iri(MANDATARIS), VENDOR)
