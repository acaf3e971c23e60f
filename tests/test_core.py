"""
Tests for the Notatio Sinistra notation model.
"""

import dataclasses

import pytest

from conftest import make_note


class TestPitch:
    """Tests for Pitch."""

    def test_midi_number(self):
        """Test pitch to MIDI conversion."""
        from notatio_sinistra.core.notation import Accidental, Pitch, Step

        # C4 = MIDI 60
        assert Pitch(Step.C, 4).midi == 60
        # A4 = MIDI 69
        assert Pitch(Step.A, 4).midi == 69
        assert Pitch(Step.B, 3, Accidental.FLAT).midi == 58
        assert Pitch(Step.F, 4, Accidental.DOUBLE_SHARP).midi == 67

    def test_from_midi_spells_sharps(self):
        """Test that black keys are spelled with sharps."""
        from notatio_sinistra.core.notation import Accidental, Pitch, Step

        assert Pitch.from_midi(60) == Pitch(Step.C, 4)
        assert Pitch.from_midi(61) == Pitch(Step.C, 4, Accidental.SHARP)
        assert Pitch.from_midi(70) == Pitch(Step.A, 4, Accidental.SHARP)
        assert Pitch.from_midi(21) == Pitch(Step.A, 0)

    def test_from_midi_round_trip(self):
        """Test every MIDI number survives from_midi."""
        from notatio_sinistra.core.notation import Pitch

        for number in range(0, 128):
            assert Pitch.from_midi(number).midi == number

    def test_name(self):
        """Test readable pitch names."""
        from notatio_sinistra.core.notation import Accidental, Pitch, Step

        assert str(Pitch(Step.F, 5, Accidental.SHARP)) == "F#5"
        assert Pitch(Step.E, 2, Accidental.DOUBLE_FLAT).name_with_octave == "Ebb2"

    def test_pitch_is_immutable(self):
        """Test that pitches cannot be changed in place."""
        from notatio_sinistra.core.notation import Pitch, Step

        pitch = Pitch(Step.C, 4)
        with pytest.raises(dataclasses.FrozenInstanceError):
            pitch.octave = 5


class TestEnums:
    """Tests for name lookups and fallbacks."""

    def test_accidental_fallback(self):
        """Test unknown accidental names fall back to none."""
        from notatio_sinistra.core.notation import Accidental

        assert Accidental.from_name("sharp") == Accidental.SHARP
        assert Accidental.from_name("double-flat") == Accidental.DOUBLE_FLAT
        assert Accidental.from_name("quarter-sharp") == Accidental.NONE
        assert Accidental.from_name(None) == Accidental.NONE

    def test_accidental_alter(self):
        """Test semitone alterations."""
        from notatio_sinistra.core.notation import Accidental

        assert Accidental.from_alter(-1) == Accidental.FLAT
        assert Accidental.from_alter(2) == Accidental.DOUBLE_SHARP
        assert Accidental.from_alter(0) == Accidental.NONE
        assert Accidental.NATURAL.alter == 0

    def test_duration_fallback(self):
        """Test unknown duration types fall back to quarter."""
        from notatio_sinistra.core.notation import NoteDuration

        assert NoteDuration.from_name("16th") == NoteDuration.SIXTEENTH
        assert NoteDuration.from_name("breve") == NoteDuration.QUARTER
        assert NoteDuration.HALF.quarter_length == 2.0
        assert NoteDuration.EIGHTH.is_beamable
        assert not NoteDuration.QUARTER.is_beamable

    def test_clef_from_sign(self):
        """Test clef sign/line mapping."""
        from notatio_sinistra.core.notation import Clef

        assert Clef.from_sign("G", 2) == Clef.TREBLE
        assert Clef.from_sign("F", 4) == Clef.BASS
        assert Clef.from_sign("C", 3) == Clef.ALTO
        assert Clef.from_sign("C", 4) == Clef.TENOR
        assert Clef.from_sign("percussion", None) == Clef.TREBLE
        assert Clef.from_name("mezzo") == Clef.TREBLE


class TestNotes:
    """Tests for notes and chords."""

    def test_rest_has_no_pitch(self):
        """Test rests are built without a pitch."""
        from notatio_sinistra.core.notation import Note, NoteDuration

        rest = Note.rest(NoteDuration.HALF)
        assert rest.is_rest is True
        assert rest.pitch is None
        assert str(rest) == "rest half"

    def test_chord_takes_first_note_duration(self):
        """Test Chord.of copies duration and dots from its first note."""
        from notatio_sinistra.core.notation import Chord, NoteDuration

        chord = Chord.of([
            make_note("C4", NoteDuration.HALF, dots=1),
            make_note("E4", NoteDuration.HALF, dots=1),
        ])
        assert chord.duration == NoteDuration.HALF
        assert chord.dots == 1
        assert str(chord) == "[C4 E4] half."

    def test_element_quarter_length(self):
        """Test dotted lengths."""
        from notatio_sinistra.core.notation import NoteDuration, element_quarter_length

        assert element_quarter_length(make_note("C4")) == 1.0
        assert element_quarter_length(make_note("C4", NoteDuration.QUARTER, dots=1)) == 1.5
        assert element_quarter_length(make_note("C4", NoteDuration.HALF, dots=2)) == 3.5

    def test_iter_notes(self, chord_score):
        """Test iter_notes flattens chords."""
        from notatio_sinistra.core.notation import iter_notes

        triad, rest = chord_score.staves[0].measures[0].elements
        assert [str(n.pitch) for n in iter_notes(triad)] == ["C4", "E4", "G4"]
        assert list(iter_notes(rest)) == [rest]


class TestKeySignature:
    """Tests for key signatures."""

    def test_from_tonic(self):
        """Test key lookup by tonic."""
        from notatio_sinistra.core.notation import KeySignature, Mode

        assert KeySignature.from_tonic("G") == KeySignature(1)
        assert KeySignature.from_tonic("bb") == KeySignature(-2)
        assert KeySignature.from_tonic("F#", Mode.MINOR) == KeySignature(3, Mode.MINOR)
        assert KeySignature.from_tonic("H") is None

    def test_names(self):
        """Test key names."""
        from notatio_sinistra.core.notation import KeySignature, Mode

        assert str(KeySignature()) == "C major"
        assert str(KeySignature(-3, Mode.MINOR)) == "C minor"
        assert KeySignature(7).tonic_name == "C#"


class TestScore:
    """Tests for Score and measure context."""

    def test_empty_score(self):
        """Test creating an empty score."""
        from notatio_sinistra.core.notation import Score

        score = Score()
        assert score.num_staves == 0
        assert score.num_measures == 0
        assert str(score.time_signature) == "4/4"

    def test_structural_equality(self, two_measure_score):
        """Test that equal content compares equal."""
        copy = dataclasses.replace(two_measure_score)
        assert copy == two_measure_score
        assert copy is not two_measure_score

    def test_measure_context_carries_forward(self):
        """Test that omitted context fields inherit the last value seen."""
        from notatio_sinistra.core.notation import (
            Clef, KeySignature, Measure, Score, Staff, TimeSignature, iter_measure_context,
        )

        staff = Staff(
            clef=Clef.TREBLE,
            measures=(
                Measure(1, time_signature=TimeSignature(3, 4)),
                Measure(2),
                Measure(3, clef=Clef.BASS, key_signature=KeySignature(-1)),
                Measure(4),
            ),
        )
        score = Score(staves=(staff,))
        contexts = [context for _, context in iter_measure_context(staff, score)]

        assert [c.time_signature for c in contexts] == [TimeSignature(3, 4)] * 4
        assert [c.clef for c in contexts] == [Clef.TREBLE, Clef.TREBLE, Clef.BASS, Clef.BASS]
        assert contexts[1].key_signature == KeySignature(0)
        assert contexts[3].key_signature == KeySignature(-1)


class TestValidation:
    """Tests for validate_score."""

    def test_valid_score_passes(self, two_measure_score, chord_score):
        """Test valid scores are returned unchanged."""
        from notatio_sinistra.core.notation import validate_score

        assert validate_score(two_measure_score) is two_measure_score
        assert validate_score(chord_score) is chord_score

    def test_rest_with_pitch_rejected(self):
        """Test the is_rest / pitch invariant."""
        from notatio_sinistra.core.notation import Measure, Note, Pitch, Score, Staff, Step, validate_score
        from notatio_sinistra.errors import NotationError

        bad = Note(pitch=Pitch(Step.C, 4), is_rest=True)
        score = Score(staves=(Staff(measures=(Measure(1, (bad,)),)),))
        with pytest.raises(NotationError, match="is_rest"):
            validate_score(score)

    def test_chord_duration_mismatch_rejected(self):
        """Test chord members must share the chord's duration."""
        from notatio_sinistra.core.notation import Chord, Measure, NoteDuration, Score, Staff, validate_score
        from notatio_sinistra.errors import NotationError

        chord = Chord(
            notes=(make_note("C4"), make_note("E4", NoteDuration.HALF)),
            duration=NoteDuration.QUARTER,
        )
        score = Score(staves=(Staff(measures=(Measure(1, (chord,)),)),))
        with pytest.raises(NotationError, match="chord member"):
            validate_score(score)

    def test_single_note_chord_rejected(self):
        """Test chords need two notes."""
        from notatio_sinistra.core.notation import Chord, Measure, Score, Staff, validate_score
        from notatio_sinistra.errors import NotationError

        score = Score(staves=(Staff(measures=(Measure(1, (Chord((make_note("C4"),)),)),)),))
        with pytest.raises(NotationError):
            validate_score(score)

    def test_measure_numbers_must_increase(self):
        """Test duplicate measure numbers are rejected."""
        from notatio_sinistra.core.notation import Measure, Score, Staff, validate_score
        from notatio_sinistra.errors import NotationError

        score = Score(staves=(Staff(measures=(Measure(1), Measure(1))),))
        with pytest.raises(NotationError, match="increase"):
            validate_score(score)

    def test_fifths_range(self):
        """Test key signatures beyond seven accidentals are rejected."""
        from notatio_sinistra.core.notation import KeySignature, Score, validate_score
        from notatio_sinistra.errors import NotationError

        with pytest.raises(NotationError, match="fifths"):
            validate_score(Score(key_signature=KeySignature(8)))


class TestConfig:
    """Tests for configuration."""

    def test_config_creation(self):
        """Test creating a config."""
        from notatio_sinistra.config import Config

        config = Config()
        assert config.render.measures_per_line == 4
        assert config.render.stave_width == 250
        assert config.export.default_format == "svg"
        assert config.export.pdf_lines_per_page == 6
        assert config.recent_files == []

    def test_config_dir_from_environment(self, isolated_config):
        """Test NOTATIO_SINISTRA_HOME moves the config file."""
        from notatio_sinistra.config import Config

        assert Config().config_file == isolated_config / "config.json"

    def test_config_save_load(self, isolated_config):
        """Test saving and loading config."""
        from notatio_sinistra.config import Config

        config = Config()
        config.render.measures_per_line = 3
        config.export.default_format = "pdf"
        config.save()

        loaded = Config.load()
        assert loaded.render.measures_per_line == 3
        assert loaded.export.default_format == "pdf"

    def test_corrupt_config_uses_defaults(self, isolated_config, caplog):
        """Test an unreadable file falls back to defaults with a warning."""
        from notatio_sinistra.config import Config

        isolated_config.mkdir(parents=True)
        (isolated_config / "config.json").write_text("{not json")

        config = Config.load()
        assert config.render.measures_per_line == 4
        assert "Could not load config" in caplog.text

    def test_recent_files(self, isolated_config):
        """Test recent files are deduplicated, newest first."""
        from notatio_sinistra.config import Config

        config = Config()
        config.add_recent_file("a.musicxml")
        config.add_recent_file("b.mid")
        config.add_recent_file("a.musicxml")

        assert config.recent_files == ["a.musicxml", "b.mid"]
        assert Config.load().recent_files == ["a.musicxml", "b.mid"]

    def test_render_config_to_options(self):
        """Test building RenderOptions from the config."""
        from notatio_sinistra.config import RenderConfig

        options = RenderConfig(measures_per_line=2).to_options(is_sinistra=True)
        assert options.measures_per_line == 2
        assert options.is_sinistra is True
        assert options.width == 1200

    def test_get_config_is_shared(self):
        """Test the global config instance."""
        from notatio_sinistra.config import get_config, reset_config

        assert get_config() is get_config()
        reset_config()
        assert get_config().render.measures_per_line == 4
