"""
Notation data model.

The canonical in-memory score: pitches, notes, chords, measures, staves
and scores. Every class here is a frozen dataclass, so instances compare
structurally and are never changed in place; edits go through
``dataclasses.replace`` and produce new values.

Measures use a sparse context encoding: clef, time signature and key
signature are only stored on the measure where they change. Consumers
that scan measures in order must carry the last seen value forward,
which is what :func:`iter_measure_context` does.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Union

from notatio_sinistra.errors import NotationError


class Step(Enum):
    """Diatonic step names."""
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"
    A = "A"
    B = "B"

    @property
    def index(self) -> int:
        """Position within the octave, C = 0 ... B = 6."""
        return _STEP_ORDER.index(self)

    @property
    def semitone(self) -> int:
        """Semitones above C."""
        return _STEP_SEMITONES[self]


_STEP_ORDER = [Step.C, Step.D, Step.E, Step.F, Step.G, Step.A, Step.B]
_STEP_SEMITONES = {
    Step.C: 0, Step.D: 2, Step.E: 4, Step.F: 5,
    Step.G: 7, Step.A: 9, Step.B: 11,
}


class Accidental(Enum):
    """Accidentals, valued by their MusicXML spelling."""
    SHARP = "sharp"
    FLAT = "flat"
    NATURAL = "natural"
    DOUBLE_SHARP = "double-sharp"
    DOUBLE_FLAT = "double-flat"
    NONE = "none"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Accidental":
        """Map a spelling like ``"sharp"`` to an Accidental, ``NONE`` if unknown."""
        if not name:
            return cls.NONE
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.NONE

    @classmethod
    def from_alter(cls, alter: Optional[int]) -> "Accidental":
        """Map a semitone alteration (as in MusicXML ``<alter>``) to an Accidental."""
        return _ALTER_TO_ACCIDENTAL.get(alter, cls.NONE)

    @property
    def alter(self) -> int:
        """Semitone alteration this accidental applies (natural/none = 0)."""
        return _ACCIDENTAL_ALTER.get(self, 0)

    @property
    def text(self) -> str:
        """Short ASCII spelling used in pitch names, e.g. ``#`` or ``bb``."""
        return _ACCIDENTAL_TEXT.get(self, "")


_ALTER_TO_ACCIDENTAL = {
    1: Accidental.SHARP,
    -1: Accidental.FLAT,
    2: Accidental.DOUBLE_SHARP,
    -2: Accidental.DOUBLE_FLAT,
}
_ACCIDENTAL_ALTER = {v: k for k, v in _ALTER_TO_ACCIDENTAL.items()}
_ACCIDENTAL_TEXT = {
    Accidental.SHARP: "#",
    Accidental.FLAT: "b",
    Accidental.DOUBLE_SHARP: "##",
    Accidental.DOUBLE_FLAT: "bb",
}


class NoteDuration(Enum):
    """Rhythmic values the model can represent."""
    WHOLE = "whole"
    HALF = "half"
    QUARTER = "quarter"
    EIGHTH = "eighth"
    SIXTEENTH = "16th"
    THIRTYSECOND = "32nd"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "NoteDuration":
        """Map a duration type name to a NoteDuration, quarter if unknown."""
        if not name:
            return cls.QUARTER
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.QUARTER

    @property
    def quarter_length(self) -> float:
        """Length in quarter notes, without dots."""
        return _QUARTER_LENGTHS[self]

    @property
    def is_beamable(self) -> bool:
        """True for values that carry flags or beams (eighth and shorter)."""
        return self.quarter_length < 1.0


_QUARTER_LENGTHS = {
    NoteDuration.WHOLE: 4.0,
    NoteDuration.HALF: 2.0,
    NoteDuration.QUARTER: 1.0,
    NoteDuration.EIGHTH: 0.5,
    NoteDuration.SIXTEENTH: 0.25,
    NoteDuration.THIRTYSECOND: 0.125,
}


class Clef(Enum):
    """Supported clefs."""
    TREBLE = "treble"
    BASS = "bass"
    ALTO = "alto"
    TENOR = "tenor"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Clef":
        """Map a clef name to a Clef, treble if unknown."""
        if not name:
            return cls.TREBLE
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.TREBLE

    @classmethod
    def from_sign(cls, sign: Optional[str], line: Optional[int]) -> "Clef":
        """Map a MusicXML sign/line pair (G/2, F/4, C/3, C/4) to a Clef."""
        key = ((sign or "").upper(), line)
        return _SIGN_LINE_TO_CLEF.get(key, cls.TREBLE)


_SIGN_LINE_TO_CLEF = {
    ("G", 2): Clef.TREBLE,
    ("F", 4): Clef.BASS,
    ("C", 3): Clef.ALTO,
    ("C", 4): Clef.TENOR,
}


class Mode(Enum):
    """Key signature modes."""
    MAJOR = "major"
    MINOR = "minor"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "Mode":
        if name and name.strip().lower() in ("minor", "min", "m"):
            return cls.MINOR
        return cls.MAJOR


class BeamType(Enum):
    """Position of a note inside a beam group."""
    BEGIN = "begin"
    CONTINUE = "continue"
    END = "end"
    NONE = "none"


@dataclass(frozen=True)
class Pitch:
    """A single sounding pitch: step, octave and accidental."""
    step: Step
    octave: int
    accidental: Accidental = Accidental.NONE

    @classmethod
    def from_midi(cls, midi_number: int) -> "Pitch":
        """Build a pitch from a MIDI note number, spelling black keys as sharps."""
        octave = midi_number // 12 - 1
        step, accidental = _MIDI_SPELLING[midi_number % 12]
        return cls(step, octave, accidental)

    @property
    def midi(self) -> int:
        """MIDI note number (C4 = 60)."""
        return (self.octave + 1) * 12 + self.step.semitone + self.accidental.alter

    @property
    def diatonic_index(self) -> int:
        """Step count from C0, ignoring accidentals. Drives staff placement."""
        return self.octave * 7 + self.step.index

    @property
    def name_with_octave(self) -> str:
        """Readable name such as ``C4`` or ``F#5``."""
        return f"{self.step.value}{self.accidental.text}{self.octave}"

    def __str__(self) -> str:
        return self.name_with_octave


_MIDI_SPELLING = [
    (Step.C, Accidental.NONE), (Step.C, Accidental.SHARP),
    (Step.D, Accidental.NONE), (Step.D, Accidental.SHARP),
    (Step.E, Accidental.NONE),
    (Step.F, Accidental.NONE), (Step.F, Accidental.SHARP),
    (Step.G, Accidental.NONE), (Step.G, Accidental.SHARP),
    (Step.A, Accidental.NONE), (Step.A, Accidental.SHARP),
    (Step.B, Accidental.NONE),
]


@dataclass(frozen=True)
class Note:
    """
    A note or rest.

    ``pitch`` is None exactly when ``is_rest`` is True. ``tied``,
    ``slurred`` and ``beam`` are None when the source said nothing.
    """
    pitch: Optional[Pitch]
    duration: NoteDuration = NoteDuration.QUARTER
    dots: int = 0
    is_rest: bool = False
    tied: Optional[bool] = None
    slurred: Optional[bool] = None
    voice: int = 1
    beam: Optional[BeamType] = None

    @classmethod
    def pitched(
        cls,
        pitch: Pitch,
        duration: NoteDuration = NoteDuration.QUARTER,
        dots: int = 0,
        **kwargs,
    ) -> "Note":
        """Create a sounding note."""
        return cls(pitch=pitch, duration=duration, dots=dots, is_rest=False, **kwargs)

    @classmethod
    def rest(
        cls,
        duration: NoteDuration = NoteDuration.QUARTER,
        dots: int = 0,
        **kwargs,
    ) -> "Note":
        """Create a rest."""
        return cls(pitch=None, duration=duration, dots=dots, is_rest=True, **kwargs)

    def __str__(self) -> str:
        head = "rest" if self.pitch is None else str(self.pitch)
        return f"{head} {self.duration.value}{'.' * self.dots}"


@dataclass(frozen=True)
class Chord:
    """Simultaneous notes sharing one rhythmic value."""
    notes: tuple[Note, ...]
    duration: NoteDuration = NoteDuration.QUARTER
    dots: int = 0

    @classmethod
    def of(cls, notes) -> "Chord":
        """Build a chord whose duration and dots come from its first note."""
        notes = tuple(notes)
        return cls(notes=notes, duration=notes[0].duration, dots=notes[0].dots)

    def __str__(self) -> str:
        pitches = " ".join(str(n.pitch) for n in self.notes if n.pitch is not None)
        return f"[{pitches}] {self.duration.value}{'.' * self.dots}"


# A rhythmic event inside a measure. Dispatch on the class, never on fields.
MeasureElement = Union[Note, Chord]


@dataclass(frozen=True)
class TimeSignature:
    beats: int = 4
    beat_type: int = 4

    def __str__(self) -> str:
        return f"{self.beats}/{self.beat_type}"


@dataclass(frozen=True)
class KeySignature:
    """Key as a count of fifths (negative = flats) plus a mode."""
    fifths: int = 0
    mode: Mode = Mode.MAJOR

    @classmethod
    def from_tonic(cls, tonic: str, mode: Mode = Mode.MAJOR) -> Optional["KeySignature"]:
        """Key for a tonic name like ``Bb`` or ``f#``, or None if unknown."""
        names = _MAJOR_TONICS if mode == Mode.MAJOR else _MINOR_TONICS
        normalized = tonic.strip()
        normalized = normalized[:1].upper() + normalized[1:].lower()
        if normalized not in names:
            return None
        return cls(names.index(normalized) - 7, mode)

    @property
    def tonic_name(self) -> str:
        """Tonic for the fifths count and mode, e.g. ``Bb`` or ``F#``."""
        names = _MAJOR_TONICS if self.mode == Mode.MAJOR else _MINOR_TONICS
        index = self.fifths + 7
        if 0 <= index < len(names):
            return names[index]
        return "C" if self.mode == Mode.MAJOR else "A"

    def __str__(self) -> str:
        return f"{self.tonic_name} {self.mode.value}"


_MAJOR_TONICS = [
    "Cb", "Gb", "Db", "Ab", "Eb", "Bb", "F",
    "C", "G", "D", "A", "E", "B", "F#", "C#",
]
_MINOR_TONICS = [
    "Ab", "Eb", "Bb", "F", "C", "G", "D",
    "A", "E", "B", "F#", "C#", "G#", "D#", "A#",
]


@dataclass(frozen=True)
class Measure:
    """
    One bar of music.

    The optional context fields are set only where the context changes.
    ``number`` is the original bar number and is never renumbered.
    """
    number: int
    elements: tuple[MeasureElement, ...] = ()
    time_signature: Optional[TimeSignature] = None
    key_signature: Optional[KeySignature] = None
    clef: Optional[Clef] = None


@dataclass(frozen=True)
class Staff:
    clef: Clef = Clef.TREBLE
    measures: tuple[Measure, ...] = ()


@dataclass(frozen=True)
class Score:
    """Root aggregate of the model."""
    time_signature: TimeSignature = field(default_factory=TimeSignature)
    key_signature: KeySignature = field(default_factory=KeySignature)
    staves: tuple[Staff, ...] = ()
    title: Optional[str] = None
    composer: Optional[str] = None
    tempo: Optional[float] = None

    @property
    def num_staves(self) -> int:
        return len(self.staves)

    @property
    def num_measures(self) -> int:
        """Number of measures in the first staff."""
        if self.staves:
            return len(self.staves[0].measures)
        return 0


@dataclass(frozen=True)
class SinistraScore(Score):
    """A score mirrored for right-to-left reading. Always derived from a Score."""
    is_transformed: bool = True
    original_direction: str = "ltr"


@dataclass(frozen=True)
class MeasureContext:
    """Clef, time and key in effect at a given measure."""
    clef: Clef
    time_signature: TimeSignature
    key_signature: KeySignature


def iter_notes(element: MeasureElement) -> Iterator[Note]:
    """Yield the notes of an element: the note itself, or each chord member."""
    if isinstance(element, Chord):
        yield from element.notes
    else:
        yield element


def element_quarter_length(element: MeasureElement) -> float:
    """Sounding length of an element in quarter notes, dots included."""
    base = element.duration.quarter_length
    return base * (2 - 0.5 ** element.dots)


def iter_measure_context(
    staff: Staff,
    score: Optional[Score] = None,
) -> Iterator[tuple[Measure, MeasureContext]]:
    """
    Walk a staff's measures in stored order with the context in effect.

    Measures that omit clef/time/key inherit the last value seen, seeded
    from the staff clef and the score's default time and key.
    """
    context = MeasureContext(
        clef=staff.clef,
        time_signature=score.time_signature if score else TimeSignature(),
        key_signature=score.key_signature if score else KeySignature(),
    )
    for measure in staff.measures:
        context = MeasureContext(
            clef=measure.clef or context.clef,
            time_signature=measure.time_signature or context.time_signature,
            key_signature=measure.key_signature or context.key_signature,
        )
        yield measure, context


def validate_score(score: Score) -> Score:
    """
    Check the model invariants and return the score unchanged.

    Raises:
        NotationError: On the first violation found.
    """
    _validate_time_signature(score.time_signature, "score")
    _validate_key_signature(score.key_signature, "score")

    for staff_index, staff in enumerate(score.staves, 1):
        previous_number: Optional[int] = None
        for measure in staff.measures:
            where = f"staff {staff_index}, measure {measure.number}"
            if previous_number is not None and measure.number <= previous_number:
                raise NotationError(
                    f"{where}: measure numbers must increase "
                    f"(follows {previous_number})"
                )
            previous_number = measure.number

            if measure.time_signature is not None:
                _validate_time_signature(measure.time_signature, where)
            if measure.key_signature is not None:
                _validate_key_signature(measure.key_signature, where)

            for position, element in enumerate(measure.elements, 1):
                _validate_element(element, f"{where}, element {position}")

    return score


def _validate_element(element: MeasureElement, where: str) -> None:
    if isinstance(element, Chord):
        if len(element.notes) < 2:
            raise NotationError(f"{where}: a chord needs at least two notes")
        for note in element.notes:
            if note.duration != element.duration or note.dots != element.dots:
                raise NotationError(
                    f"{where}: chord member {note} does not match chord "
                    f"duration {element.duration.value} with {element.dots} dot(s)"
                )
    for note in iter_notes(element):
        if note.is_rest != (note.pitch is None):
            raise NotationError(f"{where}: is_rest disagrees with pitch presence")
        if note.dots < 0:
            raise NotationError(f"{where}: negative dot count")
        if note.voice < 1:
            raise NotationError(f"{where}: voice must be positive")


def _validate_time_signature(ts: TimeSignature, where: str) -> None:
    if ts.beats < 1 or ts.beat_type < 1:
        raise NotationError(f"{where}: invalid time signature {ts}")


def _validate_key_signature(ks: KeySignature, where: str) -> None:
    if not -7 <= ks.fifths <= 7:
        raise NotationError(f"{where}: fifths {ks.fifths} outside [-7, 7]")
