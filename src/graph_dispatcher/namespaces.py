"""
Vocabulary prefixes shared by queries and configuration files.
"""

from __future__ import annotations

from typing import Dict

PREFIXES: Dict[str, str] = {
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "xsd": "http://www.w3.org/2001/XMLSchema#",
    "mu": "http://mu.semte.ch/vocabularies/core/",
    "foaf": "http://xmlns.com/foaf/0.1/",
    "pav": "http://purl.org/pav/",
    "oslc": "http://open-services.net/ns/core#",
    "dct": "http://purl.org/dc/terms/",
    "ere": "http://data.lblod.info/vocabularies/erediensten/",
    "org": "http://www.w3.org/ns/org#",
    "besluit": "http://data.vlaanderen.be/ns/besluit#",
    "gen": "https://data.vlaanderen.be/ns/generiek#",
    "mandaat": "http://data.vlaanderen.be/ns/mandaat#",
    "persoon": "https://data.vlaanderen.be/ns/persoon#",
    "person": "http://www.w3.org/ns/person#",
    "adms": "http://www.w3.org/ns/adms#",
    "schema": "http://schema.org/",
    "locn": "http://www.w3.org/ns/locn#",
    "prov": "http://www.w3.org/ns/prov#",
}

RDF_TYPE = PREFIXES["rdf"] + "type"
RDF_LANG_STRING = PREFIXES["rdf"] + "langString"
XSD_STRING = PREFIXES["xsd"] + "string"
XSD_DATETIME = PREFIXES["xsd"] + "dateTime"
MU_UUID = PREFIXES["mu"] + "uuid"
PROV_WAS_ASSOCIATED_WITH = PREFIXES["prov"] + "wasAssociatedWith"

SPARQL_PREFIXES = "\n".join(f"PREFIX {key}: <{value}>" for key, value in PREFIXES.items())


def expand(name: str) -> str:
    """
    Expand a prefixed name like ``ere:EredienstMandataris`` to a full IRI.

    Names that are already full IRIs (``http://...``, optionally wrapped in
    angle brackets) are returned unchanged.

    Raises:
        ValueError: If the prefix is not known.
    """
    name = name.strip()
    if name.startswith("<") and name.endswith(">"):
        return name[1:-1]
    if "://" in name:
        return name
    prefix, sep, local = name.partition(":")
    if not sep or prefix not in PREFIXES:
        raise ValueError(f"Unknown prefix in name: {name!r}")
    return PREFIXES[prefix] + local
