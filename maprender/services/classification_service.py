"""Optimal (natural breaks) classification of a numeric column.

Implements the Fisher-Jenks dynamic program: for every class count k and
every prefix of the sorted values, the lowest total within-class sum of
squared deviations achievable by splitting that prefix into k contiguous
classes. Identical values are collapsed into a single weighted entry first,
so a class boundary never separates equal values and a class count is
computable exactly when there are at least that many distinct values.
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)

MIN_CLASSES = 2
MAX_CLASSES = 11

# Best-fit selection: the smallest class count whose goodness of variance fit
# reaches BEST_FIT_GVF_THRESHOLD and for which one more class would improve
# the fit by less than BEST_FIT_MIN_IMPROVEMENT.
BEST_FIT_GVF_THRESHOLD = 0.9
BEST_FIT_MIN_IMPROVEMENT = 0.02


@dataclass
class ClassificationResult:
    """Breaks for every class count from ``min_classes`` to ``max_classes``.

    ``breaks[i]`` holds the lower bounds of classes 2..k for
    ``k = min_classes + i`` (k - 1 values), or an empty list when there are
    fewer than k distinct values.
    """

    breaks: list[list[float]]
    gvf: dict[int, float]
    best_fit_class_count: int
    min_value: float
    max_value: float
    distinct_count: int
    min_classes: int = MIN_CLASSES
    max_classes: int = MAX_CLASSES
    omitted: list[int] = field(default_factory=list)

    def breaks_for(self, class_count: int) -> list[float]:
        return self.breaks[class_count - self.min_classes]


def _prefix_sums(values: np.ndarray, weights: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    # relative to the smallest value, so s2 - s * s / w stays precise for large offsets
    values = values - values[0]
    zero = np.zeros(1)
    w = np.concatenate([zero, np.cumsum(weights)])
    s = np.concatenate([zero, np.cumsum(weights * values)])
    s2 = np.concatenate([zero, np.cumsum(weights * values * values)])
    return w, s, s2


def fisher_jenks_tables(
    values: np.ndarray,
    weights: np.ndarray,
    max_classes: int,
) -> tuple[np.ndarray, np.ndarray, int]:
    """Fill the cost and back-pointer tables.

    Both tables are flat arrays indexed ``j * (max_classes + 1) + k`` for a
    prefix of ``j`` (distinct, sorted) values split into ``k`` classes. The
    back-pointer holds the start of the last class.

    Returns:
        (cost, back, stride)
    """
    m = len(values)
    stride = max_classes + 1
    w, s, s2 = _prefix_sums(values, weights)

    def ssd(start, end: int):
        count = w[end] - w[start]
        total = s[end] - s[start]
        return np.maximum((s2[end] - s2[start]) - total * total / count, 0.0)

    cost = np.full((m + 1) * stride, np.inf)
    back = np.zeros((m + 1) * stride, dtype=np.int64)

    ends = np.arange(1, m + 1)
    cost[ends * stride + 1] = ssd(0, ends)

    for k in range(2, max_classes + 1):
        for j in range(k, m + 1):
            starts = np.arange(k - 1, j)
            candidates = cost[starts * stride + (k - 1)] + ssd(starts, j)
            best = int(np.argmin(candidates))
            cost[j * stride + k] = candidates[best]
            back[j * stride + k] = starts[best]

    return cost, back, stride


def _backtrack(values: np.ndarray, back: np.ndarray, stride: int, class_count: int) -> list[float]:
    cuts = []
    end = len(values)
    for k in range(class_count, 1, -1):
        start = int(back[end * stride + k])
        cuts.append(float(values[start]))
        end = start
    cuts.reverse()
    return cuts


def best_fit_class_count(
    gvf: dict[int, float],
    threshold: float = BEST_FIT_GVF_THRESHOLD,
    min_improvement: float = BEST_FIT_MIN_IMPROVEMENT,
) -> int:
    """Pick the class count at which adding classes stops paying off.

    Returns 0 when no class count could be computed.
    """
    counts = sorted(gvf)
    if not counts:
        return 0
    for k in counts:
        if gvf[k] >= threshold:
            following = gvf.get(k + 1)
            if following is None or following - gvf[k] < min_improvement:
                return k
    for k in counts:
        if gvf[k] >= threshold:
            return k
    return counts[-1]


class ClassificationService:
    """Computes natural breaks for every class count in a range."""

    def __init__(
        self,
        min_classes: int = MIN_CLASSES,
        max_classes: int = MAX_CLASSES,
        gvf_threshold: float = BEST_FIT_GVF_THRESHOLD,
        min_improvement: float = BEST_FIT_MIN_IMPROVEMENT,
    ):
        if min_classes < 2 or max_classes < min_classes:
            raise ValueError(f"invalid class range {min_classes}..{max_classes}")
        self.min_classes = min_classes
        self.max_classes = max_classes
        self.gvf_threshold = gvf_threshold
        self.min_improvement = min_improvement

    def classify(self, values: Sequence[float]) -> ClassificationResult:
        """Classify values into every class count of the configured range.

        Args:
            values: At least one numeric value, in any order.

        Returns:
            The breaks per class count, goodness of variance fit per computed
            class count, and the recommended class count.
        """
        data = np.asarray(values, dtype=float)
        if data.size == 0:
            raise ValueError("at least one value is required for classification")
        if not np.all(np.isfinite(data)):
            raise ValueError("values must be finite numbers")

        distinct, counts = np.unique(data, return_counts=True)
        m = len(distinct)
        top = min(self.max_classes, m)

        breaks: list[list[float]] = []
        gvf: dict[int, float] = {}
        omitted: list[int] = []

        if top >= self.min_classes:
            weights = counts.astype(float)
            cost, back, stride = fisher_jenks_tables(distinct, weights, top)
            total = float(cost[m * stride + 1])
            for k in range(self.min_classes, top + 1):
                within = float(cost[m * stride + k])
                gvf[k] = 1.0 - within / total if total > 0 else 1.0
        else:
            back = stride = None

        for k in range(self.min_classes, self.max_classes + 1):
            if k in gvf:
                breaks.append(_backtrack(distinct, back, stride, k))
            else:
                breaks.append([])
                omitted.append(k)

        best = best_fit_class_count(gvf, self.gvf_threshold, self.min_improvement)
        logger.debug(
            "Classified %d values (%d distinct); best fit %d classes",
            data.size,
            m,
            best,
        )
        return ClassificationResult(
            breaks=breaks,
            gvf=gvf,
            best_fit_class_count=best,
            min_value=float(distinct[0]),
            max_value=float(distinct[-1]),
            distinct_count=m,
            min_classes=self.min_classes,
            max_classes=self.max_classes,
            omitted=omitted,
        )

    def within_class_variance(self, values: Sequence[float], breaks: Sequence[float]) -> float:
        """Total within-class sum of squared deviations for a given set of lower bounds."""
        data = np.sort(np.asarray(values, dtype=float))
        edges = np.searchsorted(data, np.asarray(breaks, dtype=float), side="left")
        total = 0.0
        for group in np.split(data, edges):
            if group.size:
                total += float(((group - group.mean()) ** 2).sum())
        return total
