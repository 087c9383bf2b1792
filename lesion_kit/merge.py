import math
from dataclasses import replace
from typing import List, Sequence

from .types import Detection


def merge_detections(detections: Sequence[Detection], distance_threshold: float = 30.0) -> List[Detection]:
    """
    Collapse near-duplicate detections of the same class.

    Greedy clustering in input order: each unassigned detection seeds a cluster and
    absorbs later unassigned detections of the seed's class whose center lies within
    `distance_threshold` of the seed's center (distance is never measured to other
    members). A cluster becomes one detection with the mean box, the max confidence
    and the seed's class; single-member clusters pass through untouched.
    """

    assigned = [False] * len(detections)
    merged: List[Detection] = []

    for i, seed in enumerate(detections):
        if assigned[i]:
            continue
        assigned[i] = True
        members = [seed]

        for j in range(i + 1, len(detections)):
            if assigned[j]:
                continue
            other = detections[j]
            if other.class_id != seed.class_id:
                continue
            if math.hypot(other.cx - seed.cx, other.cy - seed.cy) <= distance_threshold:
                assigned[j] = True
                members.append(other)

        if len(members) == 1:
            merged.append(seed)
            continue

        n = float(len(members))
        merged.append(
            replace(
                seed,
                cx=sum(m.cx for m in members) / n,
                cy=sum(m.cy for m in members) / n,
                w=sum(m.w for m in members) / n,
                h=sum(m.h for m in members) / n,
                confidence=max(m.confidence for m in members),
            )
        )

    return merged
