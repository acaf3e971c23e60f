"""
Manual entry - build a score measure by measure.

Every operation takes a ManualEntryState and returns a new one; nothing
is mutated and nothing raises. The host (CLI, command executor, a UI)
only keeps the latest state and calls these transitions on user input.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Union
import logging

from notatio_sinistra.core.notation import (
    Accidental,
    Clef,
    KeySignature,
    Measure,
    MeasureElement,
    Mode,
    Note,
    NoteDuration,
    Pitch,
    Score,
    Staff,
    Step,
    TimeSignature,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManualEntryState:
    """
    Snapshot of an in-progress manual entry session.

    ``current_measure`` is 1-based and always points at stored measure
    storage (operations extend storage before moving the cursor).
    ``current_beat`` is advisory and not checked against the meter.
    """
    current_measure: int = 1
    current_beat: int = 1
    clef: Clef = Clef.TREBLE
    time_signature: TimeSignature = field(default_factory=TimeSignature)
    key_signature: KeySignature = field(default_factory=KeySignature)
    measures: tuple[Measure, ...] = (Measure(number=1),)

    @property
    def current_elements(self) -> tuple[MeasureElement, ...]:
        """Elements of the measure under the cursor (empty if not stored yet)."""
        index = self.current_measure - 1
        if index < len(self.measures):
            return self.measures[index].elements
        return ()


def create_empty_state() -> ManualEntryState:
    """One empty measure, treble clef, 4/4, C major."""
    return ManualEntryState(
        current_measure=1,
        current_beat=1,
        clef=Clef.TREBLE,
        time_signature=TimeSignature(4, 4),
        key_signature=KeySignature(0, Mode.MAJOR),
        measures=(Measure(number=1),),
    )


def _append_element(state: ManualEntryState, element: MeasureElement) -> ManualEntryState:
    """Append to the measure under the cursor, creating it if needed."""
    measures = list(state.measures)
    index = state.current_measure - 1

    if index >= len(measures):
        measures.append(Measure(number=state.current_measure, elements=(element,)))
    else:
        measure = measures[index]
        measures[index] = replace(measure, elements=measure.elements + (element,))

    return replace(state, measures=tuple(measures))


def add_note(
    state: ManualEntryState,
    step: Union[Step, str],
    octave: int,
    duration: Union[NoteDuration, str],
    accidental: Union[Accidental, str, None] = Accidental.NONE,
) -> ManualEntryState:
    """
    Append a pitched note to the current measure.

    Args:
        state: Current state
        step: Step name ("C".."B") or Step
        octave: Octave number (4 = middle C octave)
        duration: Duration name ("quarter", "16th", ...) or NoteDuration
        accidental: Accidental, its name, or None for no accidental

    Returns:
        New state with the note appended
    """
    note = Note.pitched(
        Pitch(_coerce_step(step), octave, _coerce_accidental(accidental)),
        _coerce_duration(duration),
        dots=0,
        voice=1,
    )
    return _append_element(state, note)


def add_rest(
    state: ManualEntryState,
    duration: Union[NoteDuration, str],
) -> ManualEntryState:
    """Append a rest to the current measure."""
    rest = Note.rest(_coerce_duration(duration), dots=0, voice=1)
    return _append_element(state, rest)


def next_measure(state: ManualEntryState) -> ManualEntryState:
    """Move the cursor to the next measure, creating it if not stored yet."""
    new_number = state.current_measure + 1
    measures = state.measures

    if new_number > len(measures):
        measures = measures + (Measure(number=new_number),)

    return replace(
        state,
        current_measure=new_number,
        current_beat=1,
        measures=measures,
    )


def set_clef(state: ManualEntryState, clef: Union[Clef, str]) -> ManualEntryState:
    return replace(state, clef=clef if isinstance(clef, Clef) else Clef.from_name(clef))


def set_time_signature(
    state: ManualEntryState,
    beats: int,
    beat_type: int,
) -> ManualEntryState:
    return replace(state, time_signature=TimeSignature(beats, beat_type))


def set_key_signature(
    state: ManualEntryState,
    fifths: int,
    mode: Union[Mode, str] = Mode.MAJOR,
) -> ManualEntryState:
    mode = mode if isinstance(mode, Mode) else Mode.from_name(mode)
    return replace(state, key_signature=KeySignature(fifths, mode))


def remove_last_note(state: ManualEntryState) -> ManualEntryState:
    """
    Undo the last entry.

    Drops the last element of the current measure. If that measure is
    empty, it is removed and the cursor steps back, unless it is the
    first measure, in which case there is nothing to undo.
    """
    index = state.current_measure - 1

    if index >= len(state.measures):
        return state

    measure = state.measures[index]
    if measure.elements:
        measures = list(state.measures)
        measures[index] = replace(measure, elements=measure.elements[:-1])
        return replace(state, measures=tuple(measures))

    if index > 0:
        return replace(
            state,
            current_measure=state.current_measure - 1,
            measures=state.measures[:-1],
        )

    logger.debug("Nothing to undo in the first measure")
    return state


def clear_state() -> ManualEntryState:
    """Start over with an empty state."""
    return create_empty_state()


def state_to_score(state: ManualEntryState, title: Optional[str] = None) -> Score:
    """
    Materialise the state as a single-staff Score.

    Only the first measure carries the clef, time and key as context
    overrides; later measures carry none.
    """
    measures = tuple(
        replace(
            measure,
            time_signature=state.time_signature if index == 0 else None,
            key_signature=state.key_signature if index == 0 else None,
            clef=state.clef if index == 0 else None,
        )
        for index, measure in enumerate(state.measures)
    )

    return Score(
        title=title,
        time_signature=state.time_signature,
        key_signature=state.key_signature,
        staves=(Staff(clef=state.clef, measures=measures),),
    )


def _coerce_step(step: Union[Step, str]) -> Step:
    if isinstance(step, Step):
        return step
    return Step(step.strip().upper())


def _coerce_duration(duration: Union[NoteDuration, str]) -> NoteDuration:
    if isinstance(duration, NoteDuration):
        return duration
    return NoteDuration.from_name(duration)


def _coerce_accidental(accidental: Union[Accidental, str, None]) -> Accidental:
    if isinstance(accidental, Accidental):
        return accidental
    return Accidental.from_name(accidental)
