"""Mapping of scorecard evidence onto transcript segments.

Evidence cites a point in time (``Evidence.start``). For review, each citation
is linked to the transcript segment that contains it so the UI can highlight
and jump to it.

Segments are expected sorted by ``start`` and non-overlapping, with possible
gaps between them. Each segment covers ``[start, end)``.

Lookup runs in two phases:

1. Interval search: binary search for the segment containing the timestamp.
2. Gap scan: if the timestamp falls between two segments, it is attributed
   to the *preceding* segment, on the assumption that evidence describes
   something that just concluded.

Timestamps before the first segment, at or after the end of the last one,
negative or non-finite map to nothing, and evidence citing them is dropped
from the mapping.

Example:
    >>> markers = map_evidence_to_segments(scorecard, transcript.segments)
    >>> get_segment_indices_with_evidence(markers)
    [0, 3, 7]
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from rtass.scoring.models import Scorecard, SectionResult, Verdict
from rtass.transcript import TranscriptSegment

EvidenceMap = dict[int, list["EvidenceMarker"]]


@dataclass(frozen=True)
class EvidenceMarker:
    """One evidence citation linked to a transcript segment.

    Attributes:
        criterion_id: Criterion the evidence supports.
        criterion_title: Criterion title.
        verdict: Verdict for the criterion.
        evidence_quote: The quoted text.
        segment_index: Position of the segment in the segment list.
        segment_start: Segment start time in seconds.
        segment_end: Segment end time in seconds.
    """

    criterion_id: str
    criterion_title: str
    verdict: Verdict
    evidence_quote: str
    segment_index: int
    segment_start: float
    segment_end: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary."""
        return {
            "criterionId": self.criterion_id,
            "criterionTitle": self.criterion_title,
            "verdict": self.verdict.value,
            "evidenceQuote": self.evidence_quote,
            "segmentIndex": self.segment_index,
            "segmentStart": self.segment_start,
            "segmentEnd": self.segment_end,
        }


def _interval_search(timestamp: float, segments: Sequence[TranscriptSegment]) -> int | None:
    """Binary search for the segment whose ``[start, end)`` contains ``timestamp``."""
    low, high = 0, len(segments) - 1
    while low <= high:
        mid = (low + high) // 2
        segment = segments[mid]
        if segment.start <= timestamp < segment.end:
            return mid
        if timestamp < segment.start:
            high = mid - 1
        else:
            low = mid + 1
    return None


def _gap_scan(timestamp: float, segments: Sequence[TranscriptSegment]) -> int | None:
    """Return the segment preceding the gap that contains ``timestamp``."""
    for i in range(len(segments) - 1):
        if segments[i].end <= timestamp < segments[i + 1].start:
            return i
    return None


def find_segment_for_timestamp(
    timestamp: float, segments: Sequence[TranscriptSegment]
) -> int | None:
    """Locate the segment for ``timestamp``.

    Args:
        timestamp: Time in seconds.
        segments: Segments sorted by start time.

    Returns:
        The position of the matching segment in ``segments``, or None when
        the timestamp is outside the transcript or invalid.
    """
    if not segments:
        return None
    if not math.isfinite(timestamp) or timestamp < 0:
        return None
    if timestamp < segments[0].start or timestamp >= segments[-1].end:
        return None

    index = _interval_search(timestamp, segments)
    if index is not None:
        return index
    return _gap_scan(timestamp, segments)


def map_evidence_to_segments(
    scorecard: Scorecard | Iterable[SectionResult],
    segments: Sequence[TranscriptSegment],
) -> EvidenceMap:
    """Link every evidence entry in ``scorecard`` to its transcript segment.

    Args:
        scorecard: A scorecard, or any iterable of section results.
        segments: Transcript segments sorted by start time.

    Returns:
        Markers keyed by segment position, in scorecard order within each
        segment. Evidence that maps to no segment is left out.
    """
    evidence_map: EvidenceMap = {}
    if not segments:
        return evidence_map

    sections = scorecard.sections if isinstance(scorecard, Scorecard) else scorecard
    for section in sections:
        for criterion in section.criteria:
            for evidence in criterion.evidence:
                index = find_segment_for_timestamp(evidence.start, segments)
                if index is None:
                    continue
                segment = segments[index]
                evidence_map.setdefault(index, []).append(EvidenceMarker(
                    criterion_id=criterion.criterion_id,
                    criterion_title=criterion.title,
                    verdict=criterion.verdict,
                    evidence_quote=evidence.quote,
                    segment_index=index,
                    segment_start=segment.start,
                    segment_end=segment.end,
                ))
    return evidence_map


def get_evidence_for_segment(segment_index: int, evidence_map: EvidenceMap) -> list[EvidenceMarker]:
    """Markers for one segment, or an empty list."""
    return list(evidence_map.get(segment_index, ()))


def get_segment_indices_with_evidence(evidence_map: EvidenceMap) -> list[int]:
    """Segment positions that carry evidence, ascending."""
    return sorted(evidence_map)


def count_total_evidence(evidence_map: EvidenceMap) -> int:
    return sum(len(markers) for markers in evidence_map.values())


def group_evidence_by_verdict(evidence_map: EvidenceMap) -> dict[Verdict, list[EvidenceMarker]]:
    """All markers grouped by verdict."""
    by_verdict: dict[Verdict, list[EvidenceMarker]] = {}
    for markers in evidence_map.values():
        for marker in markers:
            by_verdict.setdefault(marker.verdict, []).append(marker)
    return by_verdict
