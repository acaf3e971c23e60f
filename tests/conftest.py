"""
Shared fixtures for Notatio Sinistra tests.
"""

import pytest

from notatio_sinistra.core.notation import (
    Chord,
    Clef,
    KeySignature,
    Measure,
    Note,
    NoteDuration,
    Pitch,
    Score,
    Staff,
    Step,
    TimeSignature,
)


def make_note(name: str, duration: NoteDuration = NoteDuration.QUARTER, **kwargs) -> Note:
    """Build a natural note from a name like 'C4'."""
    return Note.pitched(Pitch(Step(name[0]), int(name[1:])), duration, **kwargs)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep config files out of the real home directory."""
    import notatio_sinistra.config as config_module

    monkeypatch.setenv("NOTATIO_SINISTRA_HOME", str(tmp_path / "config"))
    monkeypatch.setattr(config_module, "_config", None)
    yield tmp_path / "config"


@pytest.fixture
def two_measure_score() -> Score:
    """Two measures, [[C4, D4], [E4, F4]], with 2/4 time on the first."""
    return Score(
        title="Two Bars",
        time_signature=TimeSignature(2, 4),
        key_signature=KeySignature(0),
        staves=(
            Staff(
                clef=Clef.TREBLE,
                measures=(
                    Measure(
                        number=1,
                        elements=(make_note("C4"), make_note("D4")),
                        time_signature=TimeSignature(2, 4),
                        key_signature=KeySignature(0),
                        clef=Clef.TREBLE,
                    ),
                    Measure(number=2, elements=(make_note("E4"), make_note("F4"))),
                ),
            ),
        ),
    )


@pytest.fixture
def chord_score() -> Score:
    """One measure holding a C major triad and a rest."""
    triad = Chord.of([make_note("C4"), make_note("E4"), make_note("G4")])
    return Score(
        staves=(
            Staff(
                measures=(
                    Measure(number=1, elements=(triad, Note.rest(NoteDuration.QUARTER))),
                ),
            ),
        ),
    )
