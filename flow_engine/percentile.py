"""Nearest-rank percentile over dwell time samples."""

from __future__ import annotations

from typing import Sequence

import numpy as np


def p90(samples: Sequence[int]) -> int:
    """Return the nearest-rank 90th percentile, index floor((n - 1) * 0.9) of the sorted samples."""

    if len(samples) == 0:
        raise ValueError("p90 of an empty sample set")
    ordered = np.sort(np.asarray(samples, dtype=np.int64))
    index = int((len(ordered) - 1) * 0.9)
    return int(ordered[index])


def percentile_or_zero(samples: Sequence[int]) -> int:
    return p90(samples) if len(samples) else 0
