"""
Tests for the Sinistra (right-to-left) transform.
"""

import pytest
from hypothesis import given, strategies as st

from conftest import make_note
from notatio_sinistra.core.notation import (
    Accidental,
    BeamType,
    Chord,
    Clef,
    Measure,
    Note,
    NoteDuration,
    Pitch,
    Score,
    SinistraScore,
    Staff,
    Step,
)
from notatio_sinistra.core.sinistra import (
    calculate_system_layout,
    get_measure_at_position,
    is_sinistra_score,
    restore_from_sinistra,
    transform_to_sinistra,
)


def pitch_names(measure):
    return [str(e.pitch) for e in measure.elements]


# ── hypothesis strategies ───────────────────────────────────────────────────────

pitches = st.builds(
    Pitch,
    step=st.sampled_from(list(Step)),
    octave=st.integers(min_value=0, max_value=8),
    accidental=st.sampled_from(list(Accidental)),
)

notes = st.one_of(
    st.builds(
        Note.pitched,
        pitches,
        st.sampled_from(list(NoteDuration)),
        st.integers(min_value=0, max_value=2),
        tied=st.sampled_from([None, True, False]),
        beam=st.sampled_from([None] + list(BeamType)),
    ),
    st.builds(Note.rest, st.sampled_from(list(NoteDuration))),
)


@st.composite
def chords(draw):
    duration = draw(st.sampled_from(list(NoteDuration)))
    members = draw(st.lists(pitches, min_size=2, max_size=4))
    return Chord.of([Note.pitched(p, duration) for p in members])


@st.composite
def staves(draw):
    count = draw(st.integers(min_value=0, max_value=6))
    measures = tuple(
        Measure(number=i + 1, elements=tuple(draw(st.lists(st.one_of(notes, chords()), max_size=5))))
        for i in range(count)
    )
    return Staff(clef=draw(st.sampled_from(list(Clef))), measures=measures)


scores = st.builds(
    Score,
    staves=st.lists(staves(), max_size=3).map(tuple),
    title=st.one_of(st.none(), st.text(max_size=10)),
)


class TestTransform:
    """Tests for transform_to_sinistra."""

    def test_scenario_two_measures(self):
        """Test [[A,B],[C,D]] becomes [[D,C],[B,A]]."""
        score = Score(staves=(Staff(measures=(
            Measure(1, (make_note("A4"), make_note("B4"))),
            Measure(2, (make_note("C5"), make_note("D5"))),
        )),))

        sinistra = transform_to_sinistra(score)
        measures = sinistra.staves[0].measures

        assert [pitch_names(m) for m in measures] == [["D5", "C5"], ["B4", "A4"]]
        assert [m.number for m in measures] == [2, 1]

    def test_tagging(self, two_measure_score):
        """Test the result carries the orientation tag."""
        sinistra = transform_to_sinistra(two_measure_score)

        assert isinstance(sinistra, SinistraScore)
        assert sinistra.is_transformed is True
        assert sinistra.original_direction == "ltr"
        assert is_sinistra_score(sinistra)
        assert not is_sinistra_score(two_measure_score)

    def test_score_fields_copied(self, two_measure_score):
        """Test title, time and key are carried over."""
        sinistra = transform_to_sinistra(two_measure_score)

        assert sinistra.title == "Two Bars"
        assert sinistra.time_signature == two_measure_score.time_signature
        assert sinistra.key_signature == two_measure_score.key_signature

    def test_source_unchanged(self, two_measure_score):
        """Test the transform does not touch its input."""
        before = pitch_names(two_measure_score.staves[0].measures[0])
        transform_to_sinistra(two_measure_score)
        assert pitch_names(two_measure_score.staves[0].measures[0]) == before

    def test_context_overrides_travel_with_measure(self, two_measure_score):
        """Test clef/time/key stay on the measure that carried them."""
        sinistra = transform_to_sinistra(two_measure_score)
        first, last = sinistra.staves[0].measures

        assert first.number == 2 and first.time_signature is None
        assert last.number == 1 and last.clef == Clef.TREBLE
        assert last.time_signature == two_measure_score.time_signature

    def test_chord_note_order_kept(self, chord_score):
        """Test chords are reversed as a unit, not internally."""
        sinistra = transform_to_sinistra(chord_score)
        rest, triad = sinistra.staves[0].measures[0].elements

        assert rest.is_rest
        assert [str(n.pitch) for n in triad.notes] == ["C4", "E4", "G4"]

    def test_empty_score(self):
        """Test a score without staves."""
        sinistra = transform_to_sinistra(Score())
        assert sinistra.staves == ()
        assert sinistra.is_transformed

    def test_restore(self, two_measure_score):
        """Test restore_from_sinistra gives back the original score."""
        restored = restore_from_sinistra(transform_to_sinistra(two_measure_score))

        assert type(restored) is Score
        assert restored == two_measure_score

    @given(scores)
    def test_round_trip(self, score):
        """Test mirroring twice restores every ordering."""
        twice = transform_to_sinistra(transform_to_sinistra(score))

        for original, mirrored in zip(score.staves, twice.staves):
            assert mirrored.measures == original.measures
        assert restore_from_sinistra(transform_to_sinistra(score)) == score

    @given(scores)
    def test_counts_and_numbers_preserved(self, score):
        """Test only order changes: measures, numbers and elements survive."""
        sinistra = transform_to_sinistra(score)

        for original, mirrored in zip(score.staves, sinistra.staves):
            assert sorted(m.number for m in mirrored.measures) == sorted(m.number for m in original.measures)
            by_number = {m.number: m for m in original.measures}
            for measure in mirrored.measures:
                source = by_number[measure.number]
                assert list(measure.elements) == list(reversed(source.elements))


class TestLayout:
    """Tests for system layout helpers."""

    def _staff(self, count):
        return Staff(measures=tuple(Measure(i + 1) for i in range(count)))

    def test_chunks(self):
        """Test fixed-size chunking with a short last system."""
        layout = calculate_system_layout(self._staff(10), 4)

        assert layout.num_systems == 3
        assert [[m.number for m in system] for system in layout.systems] == [
            [1, 2, 3, 4], [5, 6, 7, 8], [9, 10],
        ]

    def test_chunks_mirrored_sequence(self):
        """Test chunking runs over the stored (mirrored) order."""
        score = Score(staves=(self._staff(5),))
        staff = transform_to_sinistra(score).staves[0]
        layout = calculate_system_layout(staff, 4)

        assert [[m.number for m in s] for s in layout.systems] == [[5, 4, 3, 2], [1]]

    def test_empty_staff(self):
        """Test an empty staff has no systems."""
        assert calculate_system_layout(Staff(), 4).systems == ()

    def test_invalid_size(self):
        """Test measures_per_system must be positive."""
        with pytest.raises(ValueError):
            calculate_system_layout(self._staff(3), 0)

    def test_measure_at_position(self):
        """Test positional lookup."""
        staff = self._staff(3)

        assert get_measure_at_position(staff, 0).number == 1
        assert get_measure_at_position(staff, 2).number == 3
        assert get_measure_at_position(staff, 3) is None
        assert get_measure_at_position(staff, -1) is None
