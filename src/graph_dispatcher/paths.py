"""
Path configuration: how to reach the owning organization from a subject.

Each template belongs to one subject type and holds a SPARQL graph pattern.
The pattern is embedded in a query that binds ``?subject`` and reads the UUID
of ``?organizationUnit``, so the pattern must bind ``?organizationUnit`` and
must leave ``?subject`` and ``?organizationUUID`` alone.

A type can have several templates, one per relationship chain that may lead
to its organization.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from graph_dispatcher.namespaces import expand
from graph_dispatcher.settings import ConfigurationError

logger = logging.getLogger(__name__)

_BINDS_SUBJECT = re.compile(r"\bAS\s+\?subject\b", re.IGNORECASE)
_ORGANIZATION_UUID = re.compile(r"\?organizationUUID\b")
_ORGANIZATION_UNIT = re.compile(r"\?organizationUnit\b")


@dataclass(frozen=True)
class PathTemplate:
    """A relationship chain from a typed subject to its organization unit."""
    type: str
    pattern: str
    allow_multiple_organizations: bool = False

    def __post_init__(self):
        if _BINDS_SUBJECT.search(self.pattern):
            raise ConfigurationError(
                f"Path pattern for {self.type} must not bind ?subject"
            )
        if _ORGANIZATION_UUID.search(self.pattern):
            raise ConfigurationError(
                f"Path pattern for {self.type} must not use ?organizationUUID"
            )
        if not _ORGANIZATION_UNIT.search(self.pattern):
            raise ConfigurationError(
                f"Path pattern for {self.type} never binds ?organizationUnit"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PathTemplate":
        try:
            return cls(
                type=expand(data["type"]),
                pattern=data["pattern"],
                allow_multiple_organizations=bool(
                    data.get("allow_multiple_organizations", False)
                ),
            )
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f"Invalid path template {data!r}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "pattern": self.pattern,
            "allow_multiple_organizations": self.allow_multiple_organizations,
        }


def templates_from_list(items: List[Dict[str, Any]]) -> List[PathTemplate]:
    return [PathTemplate.from_dict(item) for item in items]


def load_path_templates(path: Union[str, Path]) -> List[PathTemplate]:
    """
    Load path templates from a YAML file with a top-level ``paths`` list.

    Raises:
        ConfigurationError: If the file is missing or malformed.
    """
    path = Path(path)
    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read path configuration {path}: {e}") from e

    if not isinstance(content, dict) or not isinstance(content.get("paths"), list):
        raise ConfigurationError(f"{path} must contain a 'paths' list")

    templates = templates_from_list(content["paths"])
    logger.info(f"Loaded {len(templates)} path templates from {path}")
    return templates
