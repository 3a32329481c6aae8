"""
Graph Dispatcher: moves staged RDF data into per-organization graphs.

Inserted triples are resolved to their owning organization through
configurable path templates and relocated; deleted triples are removed from
every graph they can safely be attributed to.
"""

__version__ = "0.1.0"

from graph_dispatcher.terms import Term, TermKind, Quad, Changeset
from graph_dispatcher.quads import QuadBatch
from graph_dispatcher.gateway import Gateway, GatewayError, SparqlGateway
from graph_dispatcher.settings import ConfigurationError, DispatcherSettings
from graph_dispatcher.paths import PathTemplate, load_path_templates
from graph_dispatcher.model import ModelArena, ModelNode, load_model
from graph_dispatcher.symbols import SymbolGenerator
from graph_dispatcher.results import DispatchMode, DispatchResult, ProcessingReport
from graph_dispatcher.processor import DeltaProcessor

__all__ = [
    "Term",
    "TermKind",
    "Quad",
    "Changeset",
    "QuadBatch",
    "Gateway",
    "GatewayError",
    "SparqlGateway",
    "ConfigurationError",
    "DispatcherSettings",
    "PathTemplate",
    "load_path_templates",
    "ModelArena",
    "ModelNode",
    "load_model",
    "SymbolGenerator",
    "DispatchMode",
    "DispatchResult",
    "ProcessingReport",
    "DeltaProcessor",
]
