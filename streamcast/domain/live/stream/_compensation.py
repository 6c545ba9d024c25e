"""Rollback of partially provisioned streams."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .stream_errors import CompensationWarning

RollbackAction = Callable[[], Awaitable[None]]


@dataclass(frozen=True)
class RollbackStep:
    description: str
    action: RollbackAction


class RollbackList:
    """Undo actions accumulated as resources are created, unwound in reverse."""

    def __init__(self):
        self._steps: list[RollbackStep] = []

    def add(self, description: str, action: RollbackAction) -> None:
        self._steps.append(RollbackStep(description, action))

    @property
    def steps(self) -> list[RollbackStep]:
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    async def unwind(self) -> list[CompensationWarning]:
        """Run every step newest-first; a failing step never stops the rest."""
        warnings: list[CompensationWarning] = []
        while self._steps:
            step = self._steps.pop()
            try:
                await step.action()
                logger.info(f"↩️  Rolled back: {step.description}")
            except (Exception, asyncio.CancelledError) as e:
                warning = CompensationWarning(step.description, e)
                logger.warning(f"⚠️  Compensation step failed: {warning}")
                warnings.append(warning)
        return warnings


class CompensationCoordinator:
    """Best-effort cleanup of remote resources and the local media file."""

    async def compensate(self, rollback: RollbackList, media_path: Path | None) -> list[CompensationWarning]:
        """Unwind `rollback` then delete `media_path`.

        Returns:
            One warning per cleanup step that failed; never raises
        """
        logger.info(f"Compensating {len(rollback)} rollback step(s)")
        warnings = await rollback.unwind()

        if media_path is not None:
            try:
                media_path.unlink(missing_ok=True)
                logger.info(f"🗑️  Removed media file {media_path}")
            except OSError as e:
                warning = CompensationWarning(f"remove media file {media_path}", e)
                logger.warning(f"⚠️  Compensation step failed: {warning}")
                warnings.append(warning)

        return warnings
