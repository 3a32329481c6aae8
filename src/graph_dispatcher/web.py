"""
Graph Dispatcher Web API

FastAPI surface receiving delta-notifier deliveries. Every trigger is
acknowledged right away and processed in a background task; outcomes only
show up in the logs and, when enabled, the error graph.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import BackgroundTasks, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from graph_dispatcher import __version__
from graph_dispatcher.processor import DeltaProcessor

logger = logging.getLogger(__name__)


# Pydantic models for the delta-notifier body
class DeltaTerm(BaseModel):
    """One RDF term as sent by the delta-notifier."""
    type: str
    value: str
    datatype: Optional[str] = None
    lang: Optional[str] = Field(default=None, alias="xml:lang")

    model_config = {"populate_by_name": True}


class DeltaTriple(BaseModel):
    subject: DeltaTerm
    predicate: DeltaTerm
    object: DeltaTerm
    graph: Optional[DeltaTerm] = None


class DeltaChangeset(BaseModel):
    """Triples inserted and deleted in one notification."""
    inserts: List[DeltaTriple] = Field(default_factory=list)
    deletes: List[DeltaTriple] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _payloads(changesets: List[DeltaChangeset]) -> List[Dict[str, Any]]:
    return [c.to_payload() for c in changesets]


def create_app(processor: Optional[DeltaProcessor] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        processor: Optional DeltaProcessor (built from the environment if not
            provided)

    Returns:
        Configured FastAPI application
    """
    processor = processor or DeltaProcessor.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if processor.settings.scan_on_boot:
            logger.info("Scanning staging graphs on boot")
            await run_in_threadpool(processor.run_reported, processor.scan_and_reconcile)
        yield
        processor.close()

    app = FastAPI(
        title="Graph Dispatcher",
        description="Dispatches staged RDF data to organization graphs",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.processor = processor

    # ==========================================================================
    # Info
    # ==========================================================================

    @app.get("/", response_class=PlainTextResponse, tags=["Info"])
    async def root():
        return f"Hello from {processor.settings.service_name}"

    @app.get("/status", tags=["Info"])
    async def status(request: Request):
        """Gate usage, pending retry and effective settings."""
        return request.app.state.processor.status()

    # ==========================================================================
    # Delta triggers
    # ==========================================================================

    @app.post("/delta", status_code=202, tags=["Delta"])
    async def delta(changesets: List[DeltaChangeset], background_tasks: BackgroundTasks):
        """Process inserts and deletes in order."""
        background_tasks.add_task(
            processor.run_reported, processor.process_all_changesets, _payloads(changesets)
        )
        return {"status": "accepted", "changesets": len(changesets)}

    @app.post("/delta-inserts", status_code=202, tags=["Delta"])
    async def delta_inserts(changesets: List[DeltaChangeset], background_tasks: BackgroundTasks):
        """Process a delivery that is expected to carry only inserts."""
        background_tasks.add_task(
            processor.run_reported, processor.process_insert_changesets, _payloads(changesets)
        )
        return {"status": "accepted", "changesets": len(changesets)}

    @app.post("/delta-deletes", status_code=202, tags=["Delta"])
    async def delta_deletes(changesets: List[DeltaChangeset], background_tasks: BackgroundTasks):
        """Process a delivery that is expected to carry only deletes."""
        background_tasks.add_task(
            processor.run_reported, processor.process_delete_changesets, _payloads(changesets)
        )
        return {"status": "accepted", "changesets": len(changesets)}

    @app.post("/manual-trigger", status_code=202, tags=["Delta"])
    async def manual_trigger(
        background_tasks: BackgroundTasks,
        deletes: bool = Query(default=True, description="Also reconcile staged deletes"),
    ):
        """Sweep the staging graphs now."""
        background_tasks.add_task(
            processor.run_reported, processor.scan_and_reconcile, include_deletes=deletes
        )
        return {"status": "accepted", "deletes": deletes}

    return app
