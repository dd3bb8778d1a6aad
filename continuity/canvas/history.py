"""Canvas history: bounded whole-state undo/redo."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from continuity.models.scene import SceneContinuityData, ShotPositionData

logger = logging.getLogger(__name__)

# Shot id -> camera placement. None marks a known shot whose camera was removed.
ShotPositions = dict[str, ShotPositionData | None]


def copy_shot_positions(shot_positions: ShotPositions) -> ShotPositions:
    return {
        sid: (sp.model_copy(deep=True) if sp is not None else None)
        for sid, sp in shot_positions.items()
    }


@dataclass(frozen=True)
class HistoryEntry:
    """Full copy of the authored state at one point in time."""

    data: SceneContinuityData
    shot_positions: ShotPositions = field(default_factory=dict)

    @classmethod
    def capture(cls, data: SceneContinuityData, shot_positions: ShotPositions) -> HistoryEntry:
        return cls(data=data.model_copy(deep=True), shot_positions=copy_shot_positions(shot_positions))

    def materialize(self) -> tuple[SceneContinuityData, ShotPositions]:
        """Fresh copies, so restoring never aliases the stored entry."""
        return self.data.model_copy(deep=True), copy_shot_positions(self.shot_positions)


class UndoHistory:
    """Undo and redo stacks of ``HistoryEntry``.

    The caller pushes the pre-mutation state before every edit. Undo hands
    back the entry to restore and files the current state for redo.
    """

    def __init__(self, max_depth: int = 20):
        self.undo_stack: list[HistoryEntry] = []
        self.redo_stack: list[HistoryEntry] = []
        self.max_depth = max_depth

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    def push(self, entry: HistoryEntry) -> None:
        self.undo_stack.append(entry)
        self.redo_stack.clear()  # a new edit forks history
        if len(self.undo_stack) > self.max_depth:
            self.undo_stack.pop(0)
            logger.debug("Undo history full, dropped oldest entry")

    def undo(self, current: HistoryEntry) -> HistoryEntry | None:
        if not self.undo_stack:
            return None
        entry = self.undo_stack.pop()
        self.redo_stack.append(current)
        return entry

    def redo(self, current: HistoryEntry) -> HistoryEntry | None:
        if not self.redo_stack:
            return None
        entry = self.redo_stack.pop()
        self.undo_stack.append(current)
        if len(self.undo_stack) > self.max_depth:
            self.undo_stack.pop(0)
        return entry
