"""Progress reporting for a pipeline run."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any

# Batch progress is spread across this band; the stages before and after own
# the rest of the 0..100 range.
DATA_COLLECTED_FLOOR = 5
GRAPH_BUILDING_CEILING = 90

ProgressSink = Callable[["ProgressUpdate"], Awaitable[None] | None]


@dataclass(frozen=True)
class ProgressUpdate:
    current: int
    message: str
    total: int = 100

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def interpolate(
    done: int,
    total: int,
    floor: int = DATA_COLLECTED_FLOOR,
    ceiling: int = GRAPH_BUILDING_CEILING,
) -> int:
    """Map `done / total` items onto the [floor, ceiling] percentage band."""
    if total <= 0:
        return ceiling
    fraction = min(max(done / total, 0.0), 1.0)
    return int(floor + (ceiling - floor) * fraction)


class ProgressReporter:
    """Forwards progress to an optional sink, never letting `current` go backwards."""

    def __init__(self, sink: ProgressSink | None = None):
        self._sink = sink
        self._current = 0
        self.last: ProgressUpdate | None = None

    @property
    def current(self) -> int:
        return self._current

    async def report(self, current: int, message: str) -> ProgressUpdate:
        self._current = max(self._current, min(max(int(current), 0), 100))
        update = ProgressUpdate(current=self._current, message=message)
        self.last = update
        if self._sink is not None:
            result = self._sink(update)
            if inspect.isawaitable(result):
                await result
        return update
