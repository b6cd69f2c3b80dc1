"""In-memory history of finished runs."""

from datetime import datetime
from typing import List, Optional

from loguru import logger

from ..models.workflow import RunHistoryEntry, RunOutcome


class RunHistory:
    """Keeps a bounded list of finished runs, newest last."""

    def __init__(self, max_entries: int = 100) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: List[RunHistoryEntry] = []
        self._counter = 0

    def record(
        self,
        workflow_name: str,
        started_at: datetime,
        duration_ms: int,
        status: RunOutcome,
        steps_completed: int,
        total_steps: int,
    ) -> RunHistoryEntry:
        """Append a finished run and return its entry."""
        self._counter += 1
        entry = RunHistoryEntry(
            id=f"EX-{self._counter:03d}",
            workflow_name=workflow_name,
            started_at=started_at,
            duration_ms=max(duration_ms, 0),
            status=status,
            steps_completed=steps_completed,
            total_steps=total_steps,
        )
        self._entries.append(entry)
        del self._entries[: -self.max_entries]

        logger.info(
            f"Recorded run {entry.id}: {status.value} "
            f"({steps_completed}/{total_steps} steps, {entry.duration_ms}ms)"
        )
        return entry

    def list_entries(
        self, status: Optional[RunOutcome] = None, limit: Optional[int] = None
    ) -> List[RunHistoryEntry]:
        """Return finished runs, newest first, optionally filtered by outcome."""
        entries = [e for e in reversed(self._entries) if status is None or e.status == status]
        return entries if limit is None else entries[:limit]

    def get(self, entry_id: str) -> Optional[RunHistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)
