"""Uploaded input tracking and the pre-run input check."""

from typing import Dict, List, Optional, Set

from loguru import logger

from ..models.workflow import StepDefinition, UploadedFileRef
from .catalog import StepCatalog


class FileGate:
    """
    Tracks uploaded inputs keyed by file name.

    The gate works on the ``uploaded_files`` mapping of the run state it was
    created for, so replacing the run state also replaces the upload set.
    """

    def __init__(self, files: Optional[Dict[str, UploadedFileRef]] = None) -> None:
        self._files: Dict[str, UploadedFileRef] = files if files is not None else {}

    def add(self, ref: UploadedFileRef) -> None:
        """Add ``ref``, replacing any entry with the same name."""
        replaced = self._files.pop(ref.name, None) is not None
        self._files[ref.name] = ref
        action = "Replaced" if replaced else "Added"
        logger.info(f"{action} uploaded file: {ref.name} ({ref.size_bytes} bytes)")

    def remove(self, name: str) -> bool:
        """Remove the entry for ``name``; return whether one existed."""
        if self._files.pop(name, None) is None:
            return False
        logger.info(f"Removed uploaded file: {name}")
        return True

    def clear(self) -> None:
        self._files.clear()

    def get(self, name: str) -> Optional[UploadedFileRef]:
        return self._files.get(name)

    def files(self) -> List[UploadedFileRef]:
        """Uploaded files in the order they were (last) added."""
        return list(self._files.values())

    def __len__(self) -> int:
        return len(self._files)

    def missing_inputs(self, catalog: StepCatalog) -> List[StepDefinition]:
        """
        Return the Input steps that no uploaded file satisfies.

        Each uploaded file satisfies at most one step. Steps are matched by
        exact expected name first, then by accepted extension, and steps with
        no expected file take any file left over.
        """
        unassigned: Set[str] = set(self._files)
        pending = catalog.input_steps()

        def assign(predicate) -> None:
            for step in list(pending):
                for name in sorted(unassigned):
                    if predicate(step, name):
                        unassigned.discard(name)
                        pending.remove(step)
                        break

        assign(lambda step, name: step.expected_file is not None and step.expected_file.name == name)
        assign(lambda step, name: step.expected_file is not None and step.expected_file.accepts(name))
        assign(lambda step, name: step.expected_file is None)

        return pending

    def satisfies(self, catalog: StepCatalog) -> bool:
        """True when every Input step of ``catalog`` has a matching upload."""
        return not self.missing_inputs(catalog)
