"""Static, ordered step catalog shared by every run."""

from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import yaml
from loguru import logger

from ..models.workflow import ExpectedFile, StepDefinition, StepKind


class StepCatalog:
    """
    Ordered, immutable sequence of step definitions.

    The catalog order is the traversal order of every run. Step ids must be
    unique; definitions are frozen pydantic models so they can be shared
    across runs without copying.
    """

    def __init__(self, steps: Iterable[StepDefinition]) -> None:
        self._steps = tuple(steps)
        self._positions: Dict[str, int] = {}
        for index, step in enumerate(self._steps):
            if step.id in self._positions:
                raise ValueError(f"Duplicate step id in catalog: {step.id}")
            self._positions[step.id] = index

    @classmethod
    def from_dicts(cls, items: Iterable[Dict[str, Any]]) -> "StepCatalog":
        """Build a catalog from plain mappings (YAML/JSON shaped)."""
        return cls(StepDefinition(**item) for item in items)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "StepCatalog":
        """
        Load a catalog from a YAML file.

        The document is either a list of step mappings or a mapping with a
        ``steps`` key holding that list.
        """
        with open(path, "r", encoding="utf-8") as handle:
            document = yaml.safe_load(handle)

        if isinstance(document, dict):
            document = document.get("steps")
        if document is None:
            document = []
        if not isinstance(document, list):
            raise ValueError(f"Catalog file must contain a list of steps: {path}")

        catalog = cls.from_dicts(document)
        logger.info(f"Loaded step catalog from {path} ({len(catalog)} steps)")
        return catalog

    def list_steps(self) -> List[StepDefinition]:
        """Return the steps in traversal order."""
        return list(self._steps)

    def get(self, step_id: str) -> Optional[StepDefinition]:
        """Find a step by id."""
        index = self._positions.get(step_id)
        return None if index is None else self._steps[index]

    def index_of(self, step_id: str) -> int:
        """Return the traversal position of ``step_id`` or -1."""
        return self._positions.get(step_id, -1)

    def input_steps(self) -> List[StepDefinition]:
        """Steps of kind ``input``, in catalog order."""
        return [step for step in self._steps if step.kind == StepKind.INPUT]

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self._steps)

    def __getitem__(self, index: int) -> StepDefinition:
        return self._steps[index]


DEFAULT_STEPS: List[StepDefinition] = [
    StepDefinition(
        id="step-1",
        name="Marketing Slides",
        kind=StepKind.INPUT,
        subtitle="Input • PowerPoint",
        description="Marketing presentation input",
        simulated_duration_ms=1000,
        expected_file=ExpectedFile(name="Marketing_Slides.pptx", extensions=[".pptx"]),
    ),
    StepDefinition(
        id="step-2",
        name="Cashflow Excel",
        kind=StepKind.INPUT,
        subtitle="Input • Excel",
        description="Treasury data",
        simulated_duration_ms=1000,
        expected_file=ExpectedFile(name="Cashflow_Data.xlsx", extensions=[".xlsx", ".xls"]),
    ),
    StepDefinition(
        id="step-3",
        name="Reporting Template",
        kind=StepKind.INPUT,
        subtitle="Input • PowerPoint",
        description="PowerPoint reporting template",
        simulated_duration_ms=1000,
        expected_file=ExpectedFile(name="Reporting_Template.pptx", extensions=[".pptx"]),
    ),
    StepDefinition(
        id="step-6",
        name="Reporting Excel",
        kind=StepKind.INPUT,
        subtitle="Input • Excel",
        description="Excel reporting template",
        simulated_duration_ms=1000,
        expected_file=ExpectedFile(name="Reporting_Template.xlsx", extensions=[".xlsx", ".xls"]),
    ),
    StepDefinition(
        id="step-4",
        name="Coherence Check",
        kind=StepKind.COHERENCE_CHECK,
        subtitle="AI Process • Coherence",
        description="Validate the marketing slide data",
        simulated_duration_ms=3000,
        prompt="Check slide structure, detect missing sections and data consistency",
    ),
    StepDefinition(
        id="step-5",
        name="Coherence Check",
        kind=StepKind.COHERENCE_CHECK,
        subtitle="AI Process • Coherence",
        description="Validate the treasury data",
        simulated_duration_ms=3000,
        prompt="Validate financial calculations, check balance integrity and detect anomalies",
    ),
    StepDefinition(
        id="step-6b",
        name="Coherence Check",
        kind=StepKind.COHERENCE_CHECK,
        subtitle="AI Process • Coherence",
        description="Validate the Excel reporting template",
        simulated_duration_ms=3000,
        prompt="Validate template fields, check format consistency and placeholder mapping",
    ),
    StepDefinition(
        id="step-7",
        name="Fill Reporting Excel",
        kind=StepKind.AI_PROCESSING,
        subtitle="AI Process • Fill",
        description="The AI fills the reporting template with the validated data",
        simulated_duration_ms=5000,
        prompt="Map treasury data to the template, fill metrics, update charts and recalculate formulas",
    ),
    StepDefinition(
        id="step-8",
        name="Fill Reporting Slides",
        kind=StepKind.AI_PROCESSING,
        subtitle="AI Process • Presentation",
        description="The AI generates the presentation slides",
        simulated_duration_ms=5000,
        prompt="Generate the executive summary, build data visualizations and format the deck",
    ),
    StepDefinition(
        id="step-9",
        name="Coherence Check",
        kind=StepKind.COHERENCE_CHECK,
        subtitle="AI Process • Final validation",
        description="Final validation of the generated presentation",
        simulated_duration_ms=3000,
        prompt="Verify data accuracy, formatting consistency and all requirements",
    ),
    StepDefinition(
        id="step-10",
        name="Export Presentation",
        kind=StepKind.OUTPUT,
        subtitle="Output • PowerPoint",
        description="Export the final presentation",
        simulated_duration_ms=2000,
    ),
]


def default_catalog() -> StepCatalog:
    """Monthly FP&A reporting workflow used when no catalog file is configured."""
    return StepCatalog(DEFAULT_STEPS)
