"""
Scoped process memory budget.

Raises the soft address-space limit to at least ``limit_mb`` for the
duration of one pipeline run and restores the previous limit on every exit
path. Limits are never lowered.
"""

from __future__ import annotations

import logging
from types import TracebackType

try:
    import resource
except ImportError:  # not available on Windows
    resource = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


class MemoryBudget:
    """Context manager around RLIMIT_AS."""

    def __init__(self, limit_mb: int | None):
        self.limit_mb = limit_mb
        self.applied = False
        self._previous: tuple[int, int] | None = None

    def _target(self, soft: int, hard: int) -> int | None:
        if not self.limit_mb or resource is None:
            return None
        target = self.limit_mb * 1024 * 1024
        if hard != resource.RLIM_INFINITY:
            target = min(target, hard)
        if soft == resource.RLIM_INFINITY or soft >= target:
            return None
        return target

    def __enter__(self) -> MemoryBudget:
        if not self.limit_mb or resource is None:
            return self

        soft, hard = resource.getrlimit(resource.RLIMIT_AS)
        target = self._target(soft, hard)
        if target is None:
            return self

        try:
            resource.setrlimit(resource.RLIMIT_AS, (target, hard))
        except (ValueError, OSError) as e:
            logger.warning("Could not raise memory limit to %d MB: %s", self.limit_mb, e)
            return self

        self._previous = (soft, hard)
        self.applied = True
        logger.debug("Memory limit raised from %d to %d bytes", soft, target)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._previous is not None:
            resource.setrlimit(resource.RLIMIT_AS, self._previous)
            logger.debug("Memory limit restored to %d bytes", self._previous[0])
            self._previous = None
        self.applied = False


def memory_budget(limit_mb: int | None) -> MemoryBudget:
    return MemoryBudget(limit_mb)
