"""
MIDI adapter.

Reads a Standard MIDI File with mido. Every track that plays notes
becomes one staff; notes are bucketed into measures by their start time
and their lengths are quantised to the nearest representable value.

MIDI carries no spelling or notation, so pitches are spelled with
sharps, clefs are guessed from the register, and notes sharing a start
tick are stacked into chords.
"""

from __future__ import annotations

import io
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Optional, Union
import logging

import mido

from notatio_sinistra.adapters.base import SourceAdapter
from notatio_sinistra.core.notation import (
    Chord,
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
    TimeSignature,
)
from notatio_sinistra.errors import SourceFormatError

logger = logging.getLogger(__name__)

DEFAULT_TEMPO_BPM = 120.0

# (minimum length in quarter notes, duration), longest first
_DURATION_THRESHOLDS = [
    (3.5, NoteDuration.WHOLE),
    (1.75, NoteDuration.HALF),
    (0.875, NoteDuration.QUARTER),
    (0.4375, NoteDuration.EIGHTH),
    (0.21875, NoteDuration.SIXTEENTH),
]


@dataclass
class NoteEvent:
    """A sounding note paired from note_on/note_off messages."""
    note: int
    start_tick: int
    duration_ticks: int
    channel: int


def quantize_duration(quarters: float) -> NoteDuration:
    """Map a length in quarter notes to the closest duration at or below it."""
    for threshold, duration in _DURATION_THRESHOLDS:
        if quarters >= threshold:
            return duration
    return NoteDuration.THIRTYSECOND


def guess_clef(notes: list[int]) -> Clef:
    """Pick a clef from the average MIDI note of a track."""
    if not notes:
        return Clef.TREBLE
    average = sum(notes) / len(notes)
    if average < 48:
        return Clef.BASS
    elif average < 60:
        return Clef.BASS
    return Clef.TREBLE


def parse_key_name(name: Optional[str]) -> KeySignature:
    """
    Parse a mido key name such as ``"Eb"`` or ``"F#m"``.

    Unknown names give C major.
    """
    if not name:
        return KeySignature()
    mode = Mode.MAJOR
    tonic = name.strip()
    if tonic.endswith("m"):
        mode = Mode.MINOR
        tonic = tonic[:-1]
    key_sig = KeySignature.from_tonic(tonic, mode)
    if key_sig is None:
        logger.debug(f"Unmapped MIDI key '{name}', using C major")
        return KeySignature()
    return key_sig


class MidiAdapter(SourceAdapter):
    """Adapter for Standard MIDI Files."""

    format_name = "MIDI"

    @staticmethod
    def get_supported_extensions() -> list:
        """Get list of supported file extensions."""
        return [".mid", ".midi"]

    def read(self, data: Union[bytes, str]) -> Score:
        """
        Parse MIDI file content into a Score.

        Args:
            data: Raw bytes of a .mid file

        Returns:
            Score object

        Raises:
            SourceFormatError: If mido cannot read the data.
        """
        if isinstance(data, str):
            data = data.encode("latin-1")

        try:
            midi_file = mido.MidiFile(file=io.BytesIO(data))
        except Exception as e:
            raise SourceFormatError(f"Cannot parse MIDI data: {e}") from e

        ticks_per_beat = int(midi_file.ticks_per_beat) or 480
        tempo, time_sig, key_sig, title = self._read_meta(midi_file)

        track_events = [
            events for events in (self._pair_notes(track) for track in midi_file.tracks)
            if events
        ]

        measure_ticks = time_sig.beats * ticks_per_beat
        if track_events:
            last_measure = max(
                e.start_tick // measure_ticks + 1
                for events in track_events
                for e in events
            )
            staves = tuple(
                self._build_staff(events, ticks_per_beat, measure_ticks, last_measure, time_sig, key_sig)
                for events in track_events
            )
        else:
            logger.debug("MIDI file has no notes, producing a single rest measure")
            staves = (
                Staff(
                    clef=Clef.TREBLE,
                    measures=(
                        Measure(
                            number=1,
                            elements=(Note.rest(NoteDuration.WHOLE),),
                            time_signature=time_sig,
                            key_signature=key_sig,
                            clef=Clef.TREBLE,
                        ),
                    ),
                ),
            )

        return Score(
            title=title,
            time_signature=time_sig,
            key_signature=key_sig,
            tempo=tempo,
            staves=staves,
        )

    def _read_meta(
        self,
        midi_file: mido.MidiFile,
    ) -> tuple[float, TimeSignature, KeySignature, Optional[str]]:
        """First tempo, time signature, key and track name across all tracks."""
        tempo: Optional[float] = None
        time_sig: Optional[TimeSignature] = None
        key_sig: Optional[KeySignature] = None
        title: Optional[str] = None

        for index, track in enumerate(midi_file.tracks):
            for msg in track:
                if msg.type == "set_tempo" and tempo is None:
                    tempo = float(mido.tempo2bpm(msg.tempo))
                elif msg.type == "time_signature" and time_sig is None:
                    time_sig = TimeSignature(max(1, msg.numerator), max(1, msg.denominator))
                elif msg.type == "key_signature" and key_sig is None:
                    key_sig = parse_key_name(msg.key)
                elif msg.type == "track_name" and title is None and index == 0:
                    title = msg.name.strip() or None

        return (
            tempo if tempo is not None else DEFAULT_TEMPO_BPM,
            time_sig or TimeSignature(4, 4),
            key_sig or KeySignature(),
            title,
        )

    def _pair_notes(self, track: mido.MidiTrack) -> list[NoteEvent]:
        """
        Pair note_on/note_off into NoteEvents, first-in first-out per key.

        A note_on with velocity 0 counts as note_off. Notes still sounding
        at the end of the track end there.
        """
        active: dict[tuple[int, int], deque] = defaultdict(deque)
        events: list[NoteEvent] = []
        abs_tick = 0

        for msg in track:
            abs_tick += msg.time
            if msg.type == "note_on" and msg.velocity > 0:
                active[(msg.channel, msg.note)].append(abs_tick)
            elif msg.type == "note_off" or (msg.type == "note_on" and msg.velocity == 0):
                starts = active.get((msg.channel, msg.note))
                if starts:
                    start = starts.popleft()
                    events.append(NoteEvent(msg.note, start, abs_tick - start, msg.channel))

        for (channel, note), starts in active.items():
            for start in starts:
                events.append(NoteEvent(note, start, abs_tick - start, channel))

        events.sort(key=lambda e: (e.start_tick, e.note))
        return events

    def _build_staff(
        self,
        events: list[NoteEvent],
        ticks_per_beat: int,
        measure_ticks: int,
        last_measure: int,
        time_sig: TimeSignature,
        key_sig: KeySignature,
    ) -> Staff:
        buckets: dict[int, list[NoteEvent]] = defaultdict(list)
        for event in events:
            buckets[event.start_tick // measure_ticks + 1].append(event)

        clef = guess_clef([e.note for e in events])
        measures = []
        for number in range(1, last_measure + 1):
            elements = self._build_elements(buckets.get(number, []), ticks_per_beat)
            if not elements:
                elements = [Note.rest(NoteDuration.WHOLE)]

            if number == 1:
                measures.append(Measure(
                    number=1,
                    elements=tuple(elements),
                    time_signature=time_sig,
                    key_signature=key_sig,
                    clef=clef,
                ))
            else:
                measures.append(Measure(number=number, elements=tuple(elements)))

        return Staff(clef=clef, measures=tuple(measures))

    def _build_elements(self, events: list[NoteEvent], ticks_per_beat: int) -> list[MeasureElement]:
        """Notes in start order; notes sharing a start tick become one chord."""
        groups: dict[int, list[NoteEvent]] = defaultdict(list)
        for event in events:
            groups[event.start_tick].append(event)

        elements: list[MeasureElement] = []
        for start in sorted(groups):
            group = groups[start]
            duration = quantize_duration(group[0].duration_ticks / ticks_per_beat)
            notes = [Note.pitched(Pitch.from_midi(e.note), duration) for e in group]
            if len(notes) == 1:
                elements.append(notes[0])
            else:
                elements.append(Chord.of(notes))
        return elements
