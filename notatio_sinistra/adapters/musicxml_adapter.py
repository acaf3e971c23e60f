"""
MusicXML adapter.

Parses MusicXML (plain or compressed .mxl) with music21 and walks the
resulting stream into the notation model: one Staff per part, one
Measure per music21 measure, notes and chords in document order.

Constructs the model cannot express fall back silently: unknown
accidentals become none, unknown duration types become quarter notes
and unknown clefs become treble.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Optional, Union
import logging

from music21 import (
    chord,
    clef as m21_clef,
    converter,
    harmony,
    key,
    meter,
    note,
    spanner,
    stream,
    tempo,
)

from notatio_sinistra.adapters.base import SourceAdapter
from notatio_sinistra.core.notation import (
    Accidental,
    BeamType,
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
    Step,
    TimeSignature,
)
from notatio_sinistra.errors import SourceFormatError

logger = logging.getLogger(__name__)

# music21 beam types -> model beam markers
_BEAM_TYPES = {
    "start": BeamType.BEGIN,
    "continue": BeamType.CONTINUE,
    "stop": BeamType.END,
}


class MusicXMLAdapter(SourceAdapter):
    """
    Adapter for MusicXML input.

    Uses music21's MusicXML importer for the XML work and only maps its
    objects onto our model.
    """

    format_name = "MusicXML"

    @staticmethod
    def get_supported_extensions() -> list:
        """Get list of supported file extensions."""
        return [".musicxml", ".xml", ".mxl"]

    def read(self, data: Union[bytes, str]) -> Score:
        """
        Parse MusicXML content into a Score.

        Args:
            data: MusicXML text, or bytes (UTF-8 text or a zipped .mxl)

        Returns:
            Score object

        Raises:
            SourceFormatError: If the document cannot be parsed.
        """
        m21_score = self._parse(data)

        try:
            return self._convert_score(m21_score)
        except (AttributeError, TypeError, ValueError) as e:
            raise SourceFormatError(f"Invalid MusicXML: {e}") from e

    def _parse(self, data: Union[bytes, str]) -> stream.Score:
        if isinstance(data, bytes) and data[:2] == b"PK":
            parsed = self._parse_compressed(data)
        else:
            try:
                text = data.decode("utf-8-sig") if isinstance(data, bytes) else data
            except UnicodeDecodeError as e:
                raise SourceFormatError(f"Invalid MusicXML: not UTF-8 text ({e})") from e
            if not text.strip():
                raise SourceFormatError("Invalid MusicXML: empty document")
            try:
                parsed = converter.parseData(text, format="musicxml")
            except Exception as e:
                raise SourceFormatError(f"Invalid MusicXML: {e}") from e

        return self._ensure_score(parsed)

    def _parse_compressed(self, data: bytes) -> stream.Stream:
        """Parse zipped MusicXML by way of a temporary .mxl file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            mxl_path = Path(temp_dir) / "score.mxl"
            mxl_path.write_bytes(data)
            try:
                return converter.parse(str(mxl_path), format="musicxml")
            except Exception as e:
                raise SourceFormatError(f"Invalid compressed MusicXML: {e}") from e

    def _ensure_score(self, parsed: stream.Stream) -> stream.Score:
        """Unwrap an Opus or wrap a lone Part so we always walk a Score."""
        if isinstance(parsed, stream.Opus):
            scores = list(parsed.scores)
            if not scores:
                raise SourceFormatError("Invalid MusicXML: opus contains no scores")
            parsed = scores[0]

        if not isinstance(parsed, stream.Score):
            score_obj = stream.Score()
            score_obj.append(parsed)
            parsed = score_obj

        return parsed

    def _convert_score(self, m21_score: stream.Score) -> Score:
        default_time: Optional[TimeSignature] = None
        default_key: Optional[KeySignature] = None
        staves = []

        for part in m21_score.parts:
            staff = self._convert_part(part)
            staves.append(staff)

            if staff.measures:
                first = staff.measures[0]
                default_time = default_time or first.time_signature
                default_key = default_key or first.key_signature

        title, composer = self._read_metadata(m21_score)

        return Score(
            title=title,
            composer=composer,
            time_signature=default_time or TimeSignature(4, 4),
            key_signature=default_key or KeySignature(0, Mode.MAJOR),
            tempo=self._read_tempo(m21_score),
            staves=tuple(staves),
        )

    def _read_metadata(self, m21_score: stream.Score) -> tuple[Optional[str], Optional[str]]:
        md = m21_score.metadata
        if md is None:
            return None, None
        title = md.title or getattr(md, "movementName", None) or None
        composer = md.composer or None
        return title, composer

    def _read_tempo(self, m21_score: stream.Score) -> Optional[float]:
        marks = m21_score.recurse().getElementsByClass(tempo.MetronomeMark)
        for mark in marks:
            bpm = mark.number if mark.number is not None else mark.getQuarterBPM()
            if bpm:
                return float(bpm)
        return None

    def _convert_part(self, part: stream.Part) -> Staff:
        measures = []
        current_clef = Clef.TREBLE

        for index, m21_measure in enumerate(part.getElementsByClass(stream.Measure)):
            measure = self._convert_measure(m21_measure, index + 1)
            if measure.clef is not None:
                current_clef = measure.clef
            measures.append(measure)

        return Staff(clef=current_clef, measures=tuple(measures))

    def _convert_measure(self, m21_measure: stream.Measure, position: int) -> Measure:
        number = m21_measure.number if isinstance(m21_measure.number, int) else position

        clefs = m21_measure.getElementsByClass(m21_clef.Clef)
        measure_clef = self._convert_clef(clefs.first()) if clefs else None

        times = m21_measure.getElementsByClass(meter.TimeSignature)
        time_signature = None
        if times:
            ts = times.first()
            time_signature = TimeSignature(int(ts.numerator), int(ts.denominator))

        keys = m21_measure.getElementsByClass(key.KeySignature)
        key_signature = None
        if keys:
            ks = keys.first()
            key_signature = KeySignature(
                int(ks.sharps),
                Mode.from_name(getattr(ks, "mode", None)),
            )

        return Measure(
            number=number,
            elements=tuple(self._convert_elements(m21_measure)),
            time_signature=time_signature,
            key_signature=key_signature,
            clef=measure_clef,
        )

    def _convert_clef(self, m21_clef_obj: m21_clef.Clef) -> Clef:
        sign = getattr(m21_clef_obj, "sign", None)
        line = getattr(m21_clef_obj, "line", None)
        result = Clef.from_sign(sign, line)
        if (sign, line) not in (("G", 2), ("F", 4), ("C", 3), ("C", 4)):
            logger.debug(f"Unmapped clef {sign}/{line}, using {result.value}")
        return result

    def _convert_elements(self, m21_measure: stream.Measure) -> list[MeasureElement]:
        """Notes, rests and chords in document order, voices one after another."""
        voices = list(m21_measure.voices)
        if not voices:
            return [
                element
                for element in (self._convert_general_note(n, 1) for n in m21_measure.notesAndRests)
                if element is not None
            ]

        elements: list[MeasureElement] = []
        for index, voice in enumerate(voices, 1):
            voice_number = int(voice.id) if str(voice.id).isdigit() else index
            for n in voice.notesAndRests:
                element = self._convert_general_note(n, voice_number)
                if element is not None:
                    elements.append(element)
        return elements

    def _convert_general_note(self, n: note.GeneralNote, voice: int) -> Optional[MeasureElement]:
        if isinstance(n, harmony.Harmony):
            # Chord symbols are annotations, not sounding events
            return None

        duration = self._convert_duration(n)
        dots = int(getattr(n.duration, "dots", 0) or 0)
        slurred = self._is_slurred(n)
        beam = self._convert_beam(n)

        if isinstance(n, note.Rest):
            return Note.rest(duration, dots, slurred=slurred, voice=voice, beam=beam, tied=n.tie is not None)

        if isinstance(n, chord.Chord):
            members = [
                Note.pitched(
                    self._convert_pitch(member.pitch),
                    duration,
                    dots,
                    tied=member.tie is not None or n.tie is not None,
                    slurred=slurred,
                    voice=voice,
                    beam=beam,
                )
                for member in n.notes
            ]
            if not members:
                return None
            if len(members) == 1:
                return members[0]
            return Chord(notes=tuple(members), duration=duration, dots=dots)

        if isinstance(n, note.Note):
            return Note.pitched(
                self._convert_pitch(n.pitch),
                duration,
                dots,
                tied=n.tie is not None,
                slurred=slurred,
                voice=voice,
                beam=beam,
            )

        logger.debug(f"Skipping unsupported element {n.classes[0]}")
        return None

    def _convert_duration(self, n: note.GeneralNote) -> NoteDuration:
        duration = NoteDuration.from_name(n.duration.type)
        if duration.value != n.duration.type:
            logger.debug(f"Unmapped duration '{n.duration.type}', using quarter")
        return duration

    def _convert_pitch(self, p) -> Pitch:
        accidental_name = p.accidental.name if p.accidental is not None else None
        octave = p.octave if p.octave is not None else p.implicitOctave
        return Pitch(
            step=Step(p.step),
            octave=int(octave),
            accidental=Accidental.from_name(accidental_name),
        )

    def _is_slurred(self, n: note.GeneralNote) -> bool:
        return any(isinstance(sp, spanner.Slur) for sp in n.getSpannerSites())

    def _convert_beam(self, n: note.GeneralNote) -> Optional[BeamType]:
        beams = getattr(n, "beams", None)
        if beams is None or not beams.beamsList:
            return None
        return _BEAM_TYPES.get(beams.beamsList[0].type, BeamType.NONE)
