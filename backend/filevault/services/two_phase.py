"""Two-phase remote write with a compensating rollback.

Phase one writes something remote (an object), phase two records it
elsewhere (a metadata row). If phase two fails, the rollback undoes phase
one so neither half is left behind. The rollback is never retried.
"""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

P = TypeVar("P")
R = TypeVar("R")


class PhaseOneFailed(Exception):
    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(str(cause))


class PhaseTwoFailed(Exception):
    """Phase two failed. ``rollback_error`` is set when the rollback failed too."""

    def __init__(self, cause: Exception, rollback_error: Optional[Exception] = None):
        self.cause = cause
        self.rollback_error = rollback_error
        super().__init__(str(cause))

    @property
    def rolled_back(self) -> bool:
        return self.rollback_error is None


@dataclass
class TwoPhaseOperation(Generic[P, R]):
    """``prepare`` returns a handle that ``commit`` and ``rollback`` both receive."""

    name: str
    prepare: Callable[[], Awaitable[P]]
    commit: Callable[[P], Awaitable[R]]
    rollback: Callable[[P], Awaitable[None]]

    async def run(self) -> R:
        try:
            handle = await self.prepare()
        except Exception as e:
            raise PhaseOneFailed(e) from e

        try:
            return await self.commit(handle)
        except Exception as commit_error:
            logger.warning(f"{self.name}: commit failed, rolling back {handle!r}: {commit_error}")
            try:
                await self.rollback(handle)
            except Exception as rollback_error:
                logger.error(f"{self.name}: rollback of {handle!r} failed: {rollback_error}")
                raise PhaseTwoFailed(commit_error, rollback_error) from commit_error
            raise PhaseTwoFailed(commit_error) from commit_error
