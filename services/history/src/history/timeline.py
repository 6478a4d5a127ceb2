"""
History timeline builder for StreamAtlas.

Turns a batch of historical sessions into the sorted, strictly increasing
sequence of instants that playback walks: every session start and stop,
plus hourly checkpoints across long silent gaps so playback never jumps
over an arbitrarily long interval in a single step.
"""

from __future__ import annotations

from collections.abc import Iterable

from sa_common.models.session import Session

HOUR_MS: int = 3_600_000


class TimelineBuilder:
    """Build densified playback timelines.

    Args:
        step_ms: Maximum gap between two instants before checkpoints are
            inserted; also the checkpoint spacing.
    """

    def __init__(self, step_ms: int = HOUR_MS) -> None:
        if step_ms <= 0:
            raise ValueError("step_ms must be positive")
        self.step_ms = step_ms

    def build(self, sessions: Iterable[Session]) -> list[int]:
        """Return the densified timeline for *sessions* (epoch ms).

        An empty batch yields an empty timeline.
        """
        instants: set[int] = set()
        for session in sessions:
            if session.start_ms is not None:
                instants.add(session.start_ms)
            if session.stop_ms is not None:
                instants.add(session.stop_ms)

        boundaries = sorted(instants)
        if not boundaries:
            return []

        timeline: list[int] = []
        for current, following in zip(boundaries, boundaries[1:]):
            timeline.append(current)
            if following - current > self.step_ms:
                checkpoint = current + self.step_ms
                while checkpoint < following:
                    timeline.append(checkpoint)
                    checkpoint += self.step_ms
        timeline.append(boundaries[-1])
        return timeline
