"""
Conversion of the notation model to music21 streams.

Shared by the MusicXML exporter and the engraver. Elements are written in
stored order. For a SinistraScore that order is mirrored, so beam begin/end
markers are swapped to read begin-to-end again, and tie types are worked out
from neighbouring notes in document order.
"""

from __future__ import annotations

from typing import Optional
import logging

from music21 import (
    chord,
    clef as m21_clef,
    duration as m21_duration,
    exceptions21,
    key,
    metadata,
    meter,
    note,
    pitch as m21_pitch,
    spanner,
    stream,
    tempo,
    tie,
)
from music21.musicxml import m21ToXml

from notatio_sinistra.core.notation import (
    Accidental,
    BeamType,
    Chord,
    Clef,
    KeySignature,
    MeasureElement,
    Mode,
    Note,
    Pitch,
    Score,
    Staff,
    TimeSignature,
    iter_notes,
)
from notatio_sinistra.core.sinistra import is_sinistra_score

logger = logging.getLogger(__name__)

M21_CLEFS = {
    Clef.TREBLE: m21_clef.TrebleClef,
    Clef.BASS: m21_clef.BassClef,
    Clef.ALTO: m21_clef.AltoClef,
    Clef.TENOR: m21_clef.TenorClef,
}

# A mirrored run reads end ... begin in stored order
_MIRRORED_BEAMS = {
    BeamType.BEGIN: BeamType.END,
    BeamType.END: BeamType.BEGIN,
}


def m21_pitch_of(p: Pitch) -> m21_pitch.Pitch:
    result = m21_pitch.Pitch()
    result.step = p.step.value
    result.octave = p.octave
    if p.accidental != Accidental.NONE:
        result.accidental = m21_pitch.Accidental(p.accidental.value)
    return result


def m21_key_of(key_signature: KeySignature) -> key.KeySignature:
    ks = key.KeySignature(key_signature.fifths)
    return ks.asKey("minor" if key_signature.mode == Mode.MINOR else "major")


def m21_time_of(time_signature: TimeSignature) -> meter.TimeSignature:
    return meter.TimeSignature(f"{time_signature.beats}/{time_signature.beat_type}")


def _beam_marker(element: MeasureElement) -> Optional[BeamType]:
    if isinstance(element, Chord):
        return element.notes[0].beam if element.notes else None
    return element.beam


def _is_beamable(element: MeasureElement) -> bool:
    if isinstance(element, Note) and element.is_rest:
        return False
    return element.duration.is_beamable


def beam_runs(markers: list) -> list[list[int]]:
    """
    Split beam markers into runs of indices.

    A begin opens a run, continue/end extend it and end closes it. Markers
    that do not fit (an end with nothing open, a group never closed) still
    come back as runs so the caller can reject them.
    """
    runs: list[list[int]] = []
    current: Optional[list[int]] = None

    for index, marker in enumerate(markers):
        if marker == BeamType.BEGIN:
            if current:
                runs.append(current)
            current = [index]
        elif marker in (BeamType.CONTINUE, BeamType.END):
            if current is None:
                current = []
            current.append(index)
            if marker == BeamType.END:
                runs.append(current)
                current = None
        elif current:
            runs.append(current)
            current = None

    if current:
        runs.append(current)
    return runs


def _run_types(elements, markers, run: list[int]) -> list[str]:
    """
    music21 beam types for one run.

    Raises:
        ValueError: If the run is not a closed group of beamable notes.
    """
    if markers[run[0]] != BeamType.BEGIN:
        raise ValueError("beam group has no begin")
    if markers[run[-1]] != BeamType.END or len(run) < 2:
        raise ValueError("beam group is not closed")
    if not all(_is_beamable(elements[i]) for i in run):
        raise ValueError("beam group holds notes that cannot be beamed")
    return ["start"] + ["continue"] * (len(run) - 2) + ["stop"]


def beam_types(elements, mirrored: bool = False) -> list[Optional[tuple[str, str]]]:
    """
    Beam type and beam level per element, in stored order.

    The level is the longest value in the run (``"eighth"`` gives one beam,
    ``"16th"`` two). Runs that do not form a proper group are logged and
    left unbeamed.
    """
    markers = []
    for element in elements:
        marker = _beam_marker(element)
        if mirrored:
            marker = _MIRRORED_BEAMS.get(marker, marker)
        markers.append(marker)

    types: list[Optional[tuple[str, str]]] = [None] * len(elements)
    for run in beam_runs(markers):
        try:
            run_types = _run_types(elements, markers, run)
        except ValueError as e:
            logger.warning(f"Could not beam elements {run}, leaving them unbeamed: {e}")
            continue
        level = max((elements[i].duration for i in run), key=lambda d: d.quarter_length)
        for index, beam_type in zip(run, run_types):
            types[index] = (beam_type, level.value)
    return types


def _is_tied(element: MeasureElement) -> bool:
    return any(n.tied for n in iter_notes(element))


def _ties_to(first: MeasureElement, second: MeasureElement) -> bool:
    """True if both are tied and share a sounding pitch."""
    if not (_is_tied(first) and _is_tied(second)):
        return False
    left = {n.pitch.midi for n in iter_notes(first) if n.pitch is not None}
    right = {n.pitch.midi for n in iter_notes(second) if n.pitch is not None}
    return bool(left & right)


def tie_types(staff: Staff) -> dict[tuple[int, int], str]:
    """
    Tie type for each tied element, keyed by (measure position, element index).

    Types follow document order: the first note of a chain starts the tie,
    inner notes continue it and the last one stops it.
    """
    order = [
        ((m_index, e_index), element)
        for m_index, measure in enumerate(staff.measures)
        for e_index, element in enumerate(measure.elements)
    ]

    types = {}
    for k, (position, element) in enumerate(order):
        if not _is_tied(element):
            continue
        after_previous = k > 0 and _ties_to(order[k - 1][1], element)
        before_next = k + 1 < len(order) and _ties_to(element, order[k + 1][1])
        if after_previous and before_next:
            types[position] = "continue"
        elif after_previous:
            types[position] = "stop"
        else:
            types[position] = "start"
    return types


def to_music21(score: Score, include_credits: bool = True, auto_beam: bool = False) -> stream.Score:
    """
    Convert a Score or SinistraScore to a music21 Score.

    Measure numbers and stored order are kept. The first measure of each
    staff gets the clef, key and time in effect; later measures only carry
    their own overrides.

    Args:
        score: Score to convert
        include_credits: Write title and composer
        auto_beam: Beam measures that carry no beam markers by the meter
    """
    mirrored = is_sinistra_score(score)
    m21_score = stream.Score()

    if include_credits:
        m21_score.metadata = metadata.Metadata()
        if score.title:
            m21_score.metadata.title = score.title
        if score.composer:
            m21_score.metadata.composer = score.composer

    for index, staff in enumerate(score.staves):
        m21_score.insert(0, _convert_staff(score, staff, index, mirrored, auto_beam))

    return m21_score


def _convert_staff(score: Score, staff: Staff, index: int, mirrored: bool, auto_beam: bool) -> stream.Part:
    part = stream.Part(id=f"P{index + 1}")
    ties = tie_types(staff)
    slur_run: list = []

    for position, measure in enumerate(staff.measures):
        m = stream.Measure(number=measure.number)

        if position == 0:
            m.insert(0, M21_CLEFS[measure.clef or staff.clef]())
            m.insert(0, m21_key_of(measure.key_signature or score.key_signature))
            m.insert(0, m21_time_of(measure.time_signature or score.time_signature))
            if score.tempo and index == 0:
                m.insert(0, tempo.MetronomeMark(number=score.tempo))
        else:
            if measure.clef is not None:
                m.insert(0, M21_CLEFS[measure.clef]())
            if measure.key_signature is not None:
                m.insert(0, m21_key_of(measure.key_signature))
            if measure.time_signature is not None:
                m.insert(0, m21_time_of(measure.time_signature))

        beams = beam_types(measure.elements, mirrored)
        for e_index, element in enumerate(measure.elements):
            m21_element = _convert_element(element, beams[e_index], ties.get((position, e_index)))
            m.append(m21_element)

            if any(n.slurred for n in iter_notes(element)):
                slur_run.append(m21_element)
            else:
                _close_slur(part, slur_run)
                slur_run = []

        part.append(m)

        if auto_beam and not any(_beam_marker(e) not in (None, BeamType.NONE) for e in measure.elements):
            try:
                m.makeBeams(inPlace=True)
            except exceptions21.Music21Exception as e:
                logger.warning(f"Could not beam measure {measure.number}: {e}")

    _close_slur(part, slur_run)
    return part


def _close_slur(part: stream.Part, run: list) -> None:
    if len(run) >= 2:
        part.insert(0, spanner.Slur(run))


def _convert_element(
    element: MeasureElement,
    beam: Optional[tuple[str, str]],
    tie_type: Optional[str],
) -> note.GeneralNote:
    dur = m21_duration.Duration(type=element.duration.value, dots=element.dots)

    if isinstance(element, Chord):
        result = chord.Chord([m21_pitch_of(n.pitch) for n in element.notes if n.pitch is not None])
    elif element.is_rest or element.pitch is None:
        result = note.Rest()
        result.duration = dur
        return result
    else:
        result = note.Note(m21_pitch_of(element.pitch))

    result.duration = dur
    if tie_type:
        result.tie = tie.Tie(tie_type)
    if beam:
        beam_type, level = beam
        result.beams.fill(level, type=beam_type)
    return result


def to_musicxml_string(m21_score: stream.Score) -> str:
    """Serialize a music21 score to MusicXML text without renotating it."""
    exporter = m21ToXml.GeneralObjectExporter(m21_score)
    exporter.makeNotation = False
    return exporter.parse().decode("utf-8")
