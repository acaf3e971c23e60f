"""
Sinistra transform - mirror a score for right-to-left reading.

The transform is purely structural. Measures are reversed within each
staff and elements are reversed within each measure; chords keep their
internal note order because their notes sound together. Pitches,
durations, dots, ties, slurs and beams are left exactly as they were,
and so are measure numbers and the per-measure context fields.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Optional

from notatio_sinistra.core.notation import (
    Measure,
    Score,
    SinistraScore,
    Staff,
)


@dataclass(frozen=True)
class SystemLayout:
    """Measures grouped into systems (visual lines), in sequence order."""
    systems: tuple[tuple[Measure, ...], ...]

    @property
    def num_systems(self) -> int:
        return len(self.systems)


def _mirror_measure(measure: Measure) -> Measure:
    return Measure(
        number=measure.number,
        elements=tuple(reversed(measure.elements)),
        time_signature=measure.time_signature,
        key_signature=measure.key_signature,
        clef=measure.clef,
    )


def _mirror_staff(staff: Staff) -> Staff:
    return Staff(
        clef=staff.clef,
        measures=tuple(_mirror_measure(m) for m in reversed(staff.measures)),
    )


def _score_fields(score: Score) -> dict:
    """Field values of the plain Score part of ``score``."""
    return {f.name: getattr(score, f.name) for f in fields(Score)}


def transform_to_sinistra(score: Score) -> SinistraScore:
    """
    Derive the right-to-left counterpart of a score.

    The source score is not modified; leaf values (notes, chords,
    signatures) are shared with it since they are immutable.

    Args:
        score: Score in standard left-to-right orientation

    Returns:
        SinistraScore tagged ``is_transformed=True, original_direction='ltr'``
    """
    values = _score_fields(score)
    values["staves"] = tuple(_mirror_staff(s) for s in score.staves)
    return SinistraScore(**values, is_transformed=True, original_direction="ltr")


def restore_from_sinistra(score: SinistraScore) -> Score:
    """
    Undo :func:`transform_to_sinistra`, giving back a plain Score.

    Reversal is its own inverse, so this applies the same mirroring
    again and drops the orientation tag.
    """
    values = _score_fields(score)
    values["staves"] = tuple(_mirror_staff(s) for s in score.staves)
    return Score(**values)


def is_sinistra_score(score: object) -> bool:
    """True if ``score`` carries the right-to-left marker."""
    return getattr(score, "is_transformed", False) is True


def calculate_system_layout(staff: Staff, measures_per_system: int) -> SystemLayout:
    """
    Split a staff's measures into systems of fixed size.

    Chunking runs over the measures in their stored order, so a mirrored
    staff is chunked from its (mirrored) first measure. The last system
    may be shorter.

    Raises:
        ValueError: If measures_per_system is less than 1.
    """
    if measures_per_system < 1:
        raise ValueError(
            f"measures_per_system must be at least 1, got {measures_per_system}"
        )

    measures = staff.measures
    systems = tuple(
        measures[i:i + measures_per_system]
        for i in range(0, len(measures), measures_per_system)
    )
    return SystemLayout(systems=systems)


def get_measure_at_position(
    staff: Staff,
    position: int,
) -> Optional[Measure]:
    """Measure at a display position of the stored sequence, or None."""
    if 0 <= position < len(staff.measures):
        return staff.measures[position]
    return None

