from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .models import TimelineAnomaly

ADJACENCY_TOLERANCE = 2.0


def merge_anomalies(
    anomalies: Iterable[TimelineAnomaly],
    tolerance: float = ADJACENCY_TOLERANCE,
) -> list[TimelineAnomaly]:
    """
    Collapse anomalies that describe the same event.

    Two anomalies merge when the later one starts no more than ``tolerance``
    seconds after the earlier one ends. The merged anomaly keeps the earlier
    start, spans both, takes the higher confidence and the type of the more
    confident report (ties keep the earlier one). Re-merging the output is a
    no-op.
    """
    ordered = sorted(anomalies, key=lambda item: item.timestamp)
    if not ordered:
        return []

    merged: list[TimelineAnomaly] = []
    current = ordered[0]
    for nxt in ordered[1:]:
        if nxt.timestamp <= current.end + tolerance:
            current = current.model_copy(
                update={
                    "duration": max(current.duration, nxt.end - current.timestamp),
                    "type": nxt.type if nxt.confidence > current.confidence else current.type,
                    "confidence": max(current.confidence, nxt.confidence),
                    "description": f"{current.description}; {nxt.description}",
                }
            )
        else:
            merged.append(current)
            current = nxt
    merged.append(current)
    return merged


def validate_timeline(anomalies: Iterable[TimelineAnomaly], video_duration: float) -> bool:
    return all(
        0 <= anomaly.timestamp <= video_duration
        and anomaly.duration > 0
        and 0 <= anomaly.confidence <= 100
        for anomaly in anomalies
    )


def timeline_markers(anomalies: Iterable[TimelineAnomaly]) -> List[Dict[str, Any]]:
    return [
        {
            "timestamp": anomaly.timestamp,
            "type": anomaly.type,
            "confidence": anomaly.confidence,
            "description": anomaly.description,
        }
        for anomaly in anomalies
    ]
