"""
Delta processor: wires the dispatcher together and runs processing cycles.

Every cycle, whatever triggered it, runs while holding the serialization
gate. Within a batch, changesets are processed in arrival order and the
deletes of a changeset are handled before its inserts.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from graph_dispatcher.dispatch import InsertDispatcher
from graph_dispatcher.errors import ErrorReporter
from graph_dispatcher.gate import SerializationGate
from graph_dispatcher.gateway import Gateway, SparqlGateway
from graph_dispatcher.model import ModelArena, load_model
from graph_dispatcher.paths import PathTemplate, load_path_templates
from graph_dispatcher.reconcile import DeleteReconciler
from graph_dispatcher.relocation import GraphRelocator
from graph_dispatcher.resolver import OrganizationResolver
from graph_dispatcher.results import DispatchResult, ProcessingReport
from graph_dispatcher.scheduler import DebouncedScheduler
from graph_dispatcher.settings import DispatcherSettings, configure_logging
from graph_dispatcher.submodel import SubmodelQuerySynthesizer
from graph_dispatcher.symbols import SymbolGenerator
from graph_dispatcher.terms import Changeset

logger = logging.getLogger(__name__)

ChangesetInput = Union[Changeset, Dict[str, Any]]

# Shared by every processor built without an explicit generator.
DEFAULT_SYMBOLS = SymbolGenerator()


def _changesets(changesets: Iterable[ChangesetInput]) -> List[Changeset]:
    return [
        c if isinstance(c, Changeset) else Changeset.from_dict(c)
        for c in changesets
    ]


class DeltaProcessor:
    """
    Entry point for every processing trigger.

    Example:
        processor = DeltaProcessor.from_env()
        report = processor.process_all_changesets(changesets)
        for result in report.all_results():
            print(result)
    """

    def __init__(
        self,
        settings: DispatcherSettings,
        gateway: Optional[Gateway] = None,
        templates: Optional[Sequence[PathTemplate]] = None,
        arena: Optional[ModelArena] = None,
        symbols: Optional[SymbolGenerator] = None,
        gate: Optional[SerializationGate] = None,
    ):
        """
        Args:
            settings: Process settings
            gateway: Triplestore access (defaults to a SparqlGateway on the
                configured endpoint)
            templates: Path templates (defaults to ``settings.paths_config``)
            arena: Hierarchical model (defaults to ``settings.model_config``)
            symbols: Symbol source for submodel queries
            gate: Serialization gate shared with other processors, if any
        """
        self.settings = settings
        self._owns_gateway = gateway is None
        self.gateway = gateway or SparqlGateway(
            settings.sparql_endpoint,
            update_endpoint=settings.sparql_update_endpoint,
            timeout_seconds=settings.sparql_timeout_seconds,
            max_retries=settings.sparql_max_retries,
        )
        if templates is None:
            templates = load_path_templates(settings.paths_config)
        if arena is None:
            arena = load_model(settings.model_config)

        self.gate = gate or SerializationGate()
        self.scheduler = DebouncedScheduler(self._retry, settings.retry_delay_seconds)
        self.resolver = OrganizationResolver(self.gateway, templates)
        self.relocator = GraphRelocator(self.gateway)
        self.inserts = InsertDispatcher(
            self.gateway, self.resolver, self.relocator, settings, self.scheduler
        )
        self.deletes = DeleteReconciler(self.gateway, settings)
        self.errors = ErrorReporter(self.gateway, settings)
        self.submodels = SubmodelQuerySynthesizer(
            arena, symbols or DEFAULT_SYMBOLS, self.gateway
        )

    @classmethod
    def from_env(cls) -> "DeltaProcessor":
        """Build a processor from environment settings and apply LOGLEVEL."""
        settings = DispatcherSettings.from_env()
        configure_logging(settings)
        return cls(settings)

    # =========================================================================
    # Triggers
    # =========================================================================

    def process_all_changesets(self, changesets: Iterable[ChangesetInput]) -> ProcessingReport:
        """Process changesets in order, deletes before inserts within each."""
        with self.gate.hold():
            return self._process_changesets(_changesets(changesets))

    def process_insert_changesets(self, changesets: Iterable[ChangesetInput]) -> ProcessingReport:
        """
        Process changesets that are expected to carry only inserts.

        All inserts are handled in one pass. If any changeset also carries
        deletes, falls back to ordered processing of every changeset.
        """
        changesets = _changesets(changesets)
        if any(c.deletes for c in changesets):
            return self.process_all_changesets(changesets)

        inserts = [q for c in changesets for q in c.inserts]
        with self.gate.hold():
            report = ProcessingReport(inserts=self.inserts.process_inserts(inserts))
        self._log_report(report)
        return report

    def process_delete_changesets(self, changesets: Iterable[ChangesetInput]) -> ProcessingReport:
        """
        Process changesets that are expected to carry only deletes.

        All deletes are handled in one pass. If any changeset also carries
        inserts, falls back to ordered processing of every changeset.
        """
        changesets = _changesets(changesets)
        if any(c.inserts for c in changesets):
            return self.process_all_changesets(changesets)

        deletes = [q for c in changesets for q in c.deletes]
        with self.gate.hold():
            report = ProcessingReport(deletes=self.deletes.process_deletes(deletes))
        self._log_report(report)
        return report

    def scan_and_reconcile(self, include_deletes: bool = True) -> ProcessingReport:
        """
        Sweep the staging graphs without waiting for a notification.

        Args:
            include_deletes: Also reconcile the delete staging graph. Retries
                after a successful move only look at inserts.
        """
        with self.gate.hold():
            report = ProcessingReport()
            if include_deletes:
                report.deletes = self.deletes.scan()
            report.inserts = self.inserts.scan()
        self._log_report(report)
        return report

    def run_reported(self, fn: Callable[..., ProcessingReport], *args, **kwargs) -> Optional[ProcessingReport]:
        """
        Run a trigger whose caller cannot see its outcome.

        A failing cycle is logged and, when enabled, written to the error
        graph. The staged data stays in place for the next cycle.

        Returns:
            The report, or None if the cycle failed.
        """
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            logger.exception(f"Processing cycle {getattr(fn, '__name__', fn)} failed: {e}")
            self.errors.report(e)
            return None

    def status(self) -> Dict[str, Any]:
        return {
            "settings": self.settings.to_dict(),
            "gate": self.gate.stats(),
            "retry_pending": self.scheduler.pending,
        }

    def close(self) -> None:
        self.scheduler.cancel()
        if self._owns_gateway and isinstance(self.gateway, SparqlGateway):
            self.gateway.close()

    # =========================================================================
    # Internals
    # =========================================================================

    def _process_changesets(self, changesets: List[Changeset]) -> ProcessingReport:
        report = ProcessingReport()
        for changeset in changesets:
            report.deletes.extend(self.deletes.process_deletes(changeset.deletes))
            report.inserts.extend(self.inserts.process_inserts(changeset.inserts))
        self._log_report(report)
        return report

    def _retry(self) -> None:
        logger.info("Retrying staged inserts")
        self.run_reported(self.scan_and_reconcile, include_deletes=False)

    def _log_report(self, report: ProcessingReport) -> None:
        results: List[DispatchResult] = report.all_results()
        for result in results:
            logger.info(str(result))
