"""
Per-unit processing results.

Results are returned, never raised: an unresolved or ambiguous subject is an
expected outcome that the caller logs, not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from graph_dispatcher.terms import Quad, Term

REASON_NOTHING_TO_PROCESS = "nothing to process"
REASON_MOVED = "data successfully moved"
REASON_NO_ORGANIZATION = "no organisation found yet"
REASON_TOO_MANY_ORGANIZATIONS = "too many possible organisations"
REASON_MULTIPLE_ORGANIZATION_GRAPHS = "more than one organisation graph found"
REASON_BLANK_NODE = "blank nodes cannot be matched across graphs"


class DispatchMode(Enum):
    """Which pipeline produced a result."""
    INSERT = "Insert"
    DELETE = "Delete"


@dataclass
class DispatchResult:
    """Outcome of processing one subject (inserts) or one triple (deletes)."""
    success: bool
    mode: DispatchMode
    reason: str
    subject: Optional[Term] = None
    type: Optional[Term] = None
    organization_graph: Optional[str] = None
    organization_uuids: Optional[List[str]] = None
    triple: Optional[Quad] = None
    graphs: Optional[List[str]] = None

    @classmethod
    def nothing_to_process(cls, mode: DispatchMode) -> "DispatchResult":
        return cls(success=False, mode=mode, reason=REASON_NOTHING_TO_PROCESS)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "mode": self.mode.value,
            "reason": self.reason,
        }
        if self.subject is not None:
            data["subject"] = self.subject.value
        if self.type is not None:
            data["type"] = self.type.value
        if self.organization_graph is not None:
            data["organizationGraph"] = self.organization_graph
        if self.organization_uuids is not None:
            data["organizationUUIDs"] = list(self.organization_uuids)
        if self.triple is not None:
            data["triple"] = self.triple.to_dict()
        if self.graphs is not None:
            data["graphs"] = list(self.graphs)
        return data

    def __str__(self) -> str:
        status = "OK" if self.success else "FAILED"
        parts = [f"[{self.mode.value} {status}]"]
        if self.subject is not None:
            parts.append(str(self.subject))
        elif self.triple is not None:
            parts.append(" ".join(self.triple.key))
        parts.append(self.reason)
        return " ".join(parts)


@dataclass
class ProcessingReport:
    """Results of one processing cycle."""
    inserts: List[DispatchResult] = field(default_factory=list)
    deletes: List[DispatchResult] = field(default_factory=list)

    def all_results(self) -> List[DispatchResult]:
        return [*self.deletes, *self.inserts]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inserts": [r.to_dict() for r in self.inserts],
            "deletes": [r.to_dict() for r in self.deletes],
        }
