"""Tests for path template configuration."""

import pytest

from graph_dispatcher.paths import PathTemplate, load_path_templates, templates_from_list
from graph_dispatcher.settings import DATA_DIR, ConfigurationError

from conftest import MANDATARIS, ROL_BEDIENAAR


class TestPathTemplate:
    """Tests for template validation."""

    def test_valid(self):
        template = PathTemplate(type=MANDATARIS, pattern="?subject <http://x> ?organizationUnit .")
        assert template.allow_multiple_organizations is False

    def test_rejects_subject_binding(self):
        with pytest.raises(ConfigurationError, match="must not bind"):
            PathTemplate(
                type=MANDATARIS,
                pattern="BIND (<http://s> AS ?subject) ?subject <http://x> ?organizationUnit .",
            )

    def test_rejects_uuid_variable(self):
        with pytest.raises(ConfigurationError, match="organizationUUID"):
            PathTemplate(
                type=MANDATARIS,
                pattern="?subject <http://x> ?organizationUnit . ?organizationUnit mu:uuid ?organizationUUID .",
            )

    def test_requires_organization_unit(self):
        with pytest.raises(ConfigurationError, match="never binds"):
            PathTemplate(type=MANDATARIS, pattern="?subject <http://x> ?unit .")

    def test_from_dict_expands_type(self):
        template = PathTemplate.from_dict({
            "type": "ere:EredienstMandataris",
            "pattern": "?subject <http://x> ?organizationUnit .",
            "allow_multiple_organizations": True,
        })
        assert template.type == MANDATARIS
        assert template.allow_multiple_organizations is True
        assert PathTemplate.from_dict(template.to_dict()) == template

    def test_from_dict_unknown_prefix(self):
        with pytest.raises(ConfigurationError):
            PathTemplate.from_dict({"type": "nope:Thing", "pattern": "?organizationUnit"})

    def test_from_dict_missing_pattern(self):
        with pytest.raises(ConfigurationError):
            templates_from_list([{"type": "ere:RolBedienaar"}])


class TestLoadPathTemplates:
    """Tests for loading YAML path configuration."""

    def test_shipped_configuration(self):
        """Test the packaged configuration loads and covers both primary types."""
        templates = load_path_templates(DATA_DIR / "paths.yaml")
        types = {t.type for t in templates}
        assert MANDATARIS in types
        assert ROL_BEDIENAAR in types

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_path_templates(tmp_path / "missing.yaml")

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "paths.yaml"
        path.write_text("templates: []\n")
        with pytest.raises(ConfigurationError, match="'paths' list"):
            load_path_templates(path)

    def test_custom_file(self, tmp_path):
        path = tmp_path / "paths.yaml"
        path.write_text(
            "paths:\n"
            "  - type: ere:RolBedienaar\n"
            "    pattern: |\n"
            "      ?subject org:heldBy ?person .\n"
            "      ?person <http://example.org/owner> ?organizationUnit .\n"
        )
        templates = load_path_templates(path)
        assert len(templates) == 1
        assert templates[0].type == ROL_BEDIENAAR
        assert "?person" in templates[0].pattern
