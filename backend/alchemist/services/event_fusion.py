from collections.abc import Iterable
from itertools import chain


def fuse_events(
    transients: Iterable[float], onsets: Iterable[float], min_gap: float
) -> list[float]:
    """Merge two ascending event streams and drop events closer than ``min_gap``.

    Events are compared with the last event *kept*, so a dense cluster
    collapses to its first event. The earliest event always survives and the
    result is strictly ascending, even with ``min_gap=0``.
    """
    fused: list[float] = []
    last_kept: float | None = None
    for event in sorted(chain(transients, onsets)):
        if last_kept is None or (event > last_kept and event - last_kept >= min_gap):
            fused.append(event)
            last_kept = event
    return fused
