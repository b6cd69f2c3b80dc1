"""Tests for the step catalog."""

import pytest

from conftest import make_step

from app.models.workflow import ExpectedFile, StepDefinition, StepKind
from app.workflows.catalog import DEFAULT_STEPS, StepCatalog, default_catalog


@pytest.mark.unit
class TestStepCatalog:
    """Test catalog construction and queries."""

    def test_list_steps_is_stable(self, three_step_catalog):
        """list_steps() returns the same order on every call."""
        first = three_step_catalog.list_steps()
        second = three_step_catalog.list_steps()

        assert [s.id for s in first] == ["s1", "s2", "s3"]
        assert first == second
        assert first is not second

    def test_list_steps_copy_does_not_leak(self, three_step_catalog):
        """Mutating the returned list leaves the catalog unchanged."""
        steps = three_step_catalog.list_steps()
        steps.clear()

        assert len(three_step_catalog) == 3

    def test_duplicate_ids_rejected(self):
        """Step ids must be unique."""
        with pytest.raises(ValueError, match="Duplicate step id"):
            StepCatalog([make_step("a"), make_step("a")])

    def test_lookup_helpers(self, three_step_catalog):
        """get(), index_of() and input_steps() agree with catalog order."""
        assert three_step_catalog.get("s2").name == "S2"
        assert three_step_catalog.get("missing") is None
        assert three_step_catalog.index_of("s3") == 2
        assert three_step_catalog.index_of("missing") == -1
        assert [s.id for s in three_step_catalog.input_steps()] == ["s1"]
        assert three_step_catalog[0].id == "s1"

    def test_definitions_are_immutable(self, three_step_catalog):
        """Catalog steps are frozen and shared across runs."""
        step = three_step_catalog[0]

        with pytest.raises(Exception):
            step.simulated_duration_ms = 5

    def test_negative_duration_rejected(self):
        """Simulated durations cannot be negative."""
        with pytest.raises(ValueError):
            StepDefinition(id="x", name="X", kind=StepKind.OUTPUT, simulated_duration_ms=-1)

    def test_default_catalog(self):
        """The built-in reporting workflow has four inputs and ends with an export."""
        catalog = default_catalog()

        assert len(catalog) == len(DEFAULT_STEPS) == 11
        assert len(catalog.input_steps()) == 4
        assert all(s.expected_file is not None for s in catalog.input_steps())
        assert catalog[len(catalog) - 1].kind == StepKind.OUTPUT
        assert not any(s.requires_review for s in catalog)

    def test_from_yaml_list(self, tmp_path):
        """A YAML list of steps loads in file order."""
        path = tmp_path / "catalog.yaml"
        path.write_text(
            """
- id: load
  name: Load Workbook
  kind: input
  simulated_duration_ms: 500
  expected_file:
    name: Cashflow_Data.xlsx
    extensions: [xlsx]
- id: export
  name: Export
  kind: output
""",
            encoding="utf-8",
        )

        catalog = StepCatalog.from_yaml(path)

        assert [s.id for s in catalog] == ["load", "export"]
        assert catalog[0].expected_file == ExpectedFile(
            name="Cashflow_Data.xlsx", extensions=[".xlsx"]
        )
        assert catalog[1].simulated_duration_ms == 0

    def test_from_yaml_mapping_with_steps_key(self, tmp_path):
        """A mapping with a ``steps`` key is accepted too."""
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "steps:\n  - id: only\n    name: Only\n    kind: ai_processing\n    requires_review: true\n",
            encoding="utf-8",
        )

        catalog = StepCatalog.from_yaml(path)

        assert len(catalog) == 1
        assert catalog[0].kind == StepKind.AI_PROCESSING
        assert catalog[0].requires_review is True

    def test_from_yaml_empty_file(self, tmp_path):
        """An empty file yields an empty catalog."""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert len(StepCatalog.from_yaml(path)) == 0

    def test_from_yaml_invalid_shape(self, tmp_path):
        """A scalar document is rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("just a string\n", encoding="utf-8")

        with pytest.raises(ValueError, match="list of steps"):
            StepCatalog.from_yaml(path)

    def test_from_yaml_unknown_kind(self, tmp_path):
        """Step kinds are validated."""
        path = tmp_path / "bad.yaml"
        path.write_text("- id: x\n  name: X\n  kind: teleport\n", encoding="utf-8")

        with pytest.raises(ValueError):
            StepCatalog.from_yaml(path)
