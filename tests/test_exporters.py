"""
Tests for the exporters.
"""

import re

import pytest

from conftest import make_note
from notatio_sinistra.adapters.musicxml_adapter import MusicXMLAdapter
from notatio_sinistra.core.music21_bridge import beam_runs, beam_types, tie_types, to_music21
from notatio_sinistra.core.notation import (
    BeamType,
    Clef,
    Measure,
    NoteDuration,
    Score,
    Staff,
    TimeSignature,
)
from notatio_sinistra.core.sinistra import transform_to_sinistra
from notatio_sinistra.errors import ExportError
from notatio_sinistra.export import (
    MusicXMLExporter,
    MusicXMLExportOptions,
    PDFExporter,
    PDFExportOptions,
    PNGExporter,
    SVGExporter,
    export_score,
)
from notatio_sinistra.render import RenderOptions


def _has_cairo() -> bool:
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError):
        return False
    return True


requires_cairo = pytest.mark.skipif(not _has_cairo(), reason="cairosvg or libcairo not available")


def long_score(count: int) -> Score:
    return Score(
        title="Long",
        composer="Anon",
        staves=(Staff(measures=tuple(Measure(i + 1, (make_note("C5"),)) for i in range(count))),),
    )


class TestSVGExporter:
    """Tests for SVG export."""

    def test_export(self, tmp_path, two_measure_score):
        """Test the SVG file is written."""
        path = SVGExporter().export(transform_to_sinistra(two_measure_score), tmp_path / "out.svg")

        assert path.exists()
        assert path.read_text(encoding="utf-8").startswith("<?xml")

    def test_extension_and_directories(self, tmp_path, two_measure_score):
        """Test a wrong suffix is corrected and parents are created."""
        path = SVGExporter().export(two_measure_score, tmp_path / "nested" / "out.txt")

        assert path.suffix == ".svg"
        assert path.parent.name == "nested"
        assert path.exists()

    def test_export_to_string(self, two_measure_score):
        """Test in-memory rendering."""
        svg = SVGExporter().export_to_string(two_measure_score)
        assert "Two Bars" in svg

    def test_extensions(self):
        """Test supported extensions."""
        assert SVGExporter.get_supported_extensions() == [".svg"]


@requires_cairo
class TestImageExporters:
    """Tests for PNG and PDF export."""

    def test_png(self, tmp_path, two_measure_score):
        """Test PNG output starts with the PNG signature."""
        path = PNGExporter().export(two_measure_score, tmp_path / "out")

        assert path.suffix == ".png"
        assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_pdf_pages(self, tmp_path):
        """Test lines are split across PDF pages."""
        from PyPDF2 import PdfReader

        options = PDFExportOptions(render_options=RenderOptions(measures_per_line=2), lines_per_page=2)
        path = PDFExporter(options).export(long_score(9), tmp_path / "out.pdf")

        reader = PdfReader(str(path))
        # 9 measures -> 5 lines -> 3 pages
        assert len(reader.pages) == 3
        assert reader.metadata.title == "Long"
        assert reader.metadata.author == "Anon"

    def test_export_score_dispatch(self, tmp_path, two_measure_score):
        """Test export_score picks the exporter from the format."""
        path = export_score(two_measure_score, tmp_path / "out", fmt="PDF")
        assert path.suffix == ".pdf"
        assert path.read_bytes().startswith(b"%PDF")


class TestMusicXMLExporter:
    """Tests for MusicXML export."""

    def test_sinistra_round_trip(self, tmp_path, two_measure_score):
        """Test measure numbers and mirrored order survive export and re-import."""
        sinistra = transform_to_sinistra(two_measure_score)
        path = MusicXMLExporter().export(sinistra, tmp_path / "out.musicxml")

        score = MusicXMLAdapter().read_file(path)
        measures = score.staves[0].measures
        assert [m.number for m in measures] == [2, 1]
        assert [[str(e.pitch) for e in m.elements] for m in measures] == [["F4", "E4"], ["D4", "C4"]]
        assert score.title == "Two Bars"
        assert score.time_signature.beats == 2

    def test_chords_rests_and_clef(self, tmp_path, chord_score):
        """Test chords, rests and the staff clef are written."""
        chord_score = Score(staves=(Staff(clef=Clef.BASS, measures=chord_score.staves[0].measures),))
        text = MusicXMLExporter().export_to_string(chord_score)

        assert text.count("<chord") == 2
        assert "<rest" in text
        assert "<sign>F</sign>" in text

    def test_beams_and_ties(self):
        """Test beam markers and tie starts are written."""
        score = Score(staves=(Staff(measures=(Measure(1, (
            make_note("C5", NoteDuration.EIGHTH, beam=BeamType.BEGIN, tied=True),
            make_note("C5", NoteDuration.EIGHTH, beam=BeamType.END),
        )),)),))
        text = MusicXMLExporter().export_to_string(score)

        assert ">begin</beam>" in text
        assert ">end</beam>" in text
        assert '<tie type="start"' in text

    def test_mirrored_beams_and_ties(self):
        """Test a mirrored export writes beams begin-first and ties start-then-stop."""
        score = Score(staves=(Staff(measures=(Measure(1, (
            make_note("C5", NoteDuration.EIGHTH, beam=BeamType.BEGIN),
            make_note("D5", NoteDuration.EIGHTH, beam=BeamType.END),
            make_note("E5", NoteDuration.EIGHTH, beam=BeamType.BEGIN),
            make_note("F5", NoteDuration.EIGHTH, beam=BeamType.END),
            make_note("G5", NoteDuration.QUARTER, tied=True),
            make_note("G5", NoteDuration.QUARTER, tied=True),
        )),)),))
        text = MusicXMLExporter().export_to_string(transform_to_sinistra(score))

        assert re.findall(r">(begin|continue|end)</beam>", text) == ["begin", "end", "begin", "end"]
        assert re.findall(r'<tie type="(\w+)"', text) == ["start", "stop"]

    def test_credits_optional(self, two_measure_score):
        """Test titles can be left out."""
        text = MusicXMLExporter(MusicXMLExportOptions(include_credits=False)).export_to_string(two_measure_score)
        assert "Two Bars" not in text

    def test_extension(self, tmp_path, two_measure_score):
        """Test .musicxml is used unless compressed output is asked for."""
        plain = MusicXMLExporter().export(two_measure_score, tmp_path / "a.txt")
        compressed = MusicXMLExporter(MusicXMLExportOptions(compressed=True)).export(two_measure_score, tmp_path / "b")

        assert plain.suffix == ".musicxml"
        assert compressed.suffix == ".mxl"
        assert compressed.read_bytes()[:2] == b"PK"


class TestMusic21Bridge:
    """Tests for beam and tie conversion."""

    def test_beam_runs(self):
        """Test markers split into runs, unclosed groups included."""
        markers = [BeamType.BEGIN, BeamType.END, None, BeamType.BEGIN, BeamType.CONTINUE, BeamType.BEGIN, BeamType.END]
        assert beam_runs(markers) == [[0, 1], [3, 4], [5, 6]]

    def test_beam_types_mirrored(self):
        """Test mirrored markers are read end-first."""
        elements = [
            make_note("F5", NoteDuration.EIGHTH, beam=BeamType.END),
            make_note("E5", NoteDuration.EIGHTH, beam=BeamType.BEGIN),
            make_note("D5", NoteDuration.SIXTEENTH, beam=BeamType.END),
            make_note("C5", NoteDuration.SIXTEENTH, beam=BeamType.BEGIN),
        ]

        assert beam_types(elements, mirrored=True) == [
            ("start", "eighth"), ("stop", "eighth"), ("start", "16th"), ("stop", "16th"),
        ]

    def test_beam_types_rejects_broken_groups(self, caplog):
        """Test groups without a begin, or with a quarter note, are left unbeamed."""
        elements = [
            make_note("C5", NoteDuration.EIGHTH, beam=BeamType.END),
            make_note("D5", NoteDuration.QUARTER, beam=BeamType.BEGIN),
            make_note("E5", NoteDuration.EIGHTH, beam=BeamType.END),
        ]

        assert beam_types(elements) == [None, None, None]
        assert caplog.text.count("Could not beam") == 2

    def test_tie_types_across_measures(self):
        """Test tie chains start, continue and stop in document order."""
        staff = Staff(measures=(
            Measure(1, (make_note("C4"), make_note("G4", tied=True))),
            Measure(2, (make_note("G4", tied=True), make_note("A4", tied=True))),
        ))

        assert tie_types(staff) == {(0, 1): "start", (1, 0): "stop", (1, 1): "start"}

    def test_tie_continue(self):
        """Test the inner note of a three-note chain continues the tie."""
        staff = Staff(measures=(Measure(1, tuple(make_note("E4", tied=True) for _ in range(3))),))

        assert tie_types(staff) == {(0, 0): "start", (0, 1): "continue", (0, 2): "stop"}

    def test_auto_beam(self):
        """Test unmarked eighths are beamed only when asked."""
        score = Score(time_signature=TimeSignature(2, 4), staves=(Staff(measures=(Measure(1, tuple(
            make_note(n, NoteDuration.EIGHTH) for n in ("C5", "D5", "E5", "F5")
        )),)),))

        def beamed(m21_score):
            return [n for n in m21_score.recurse().notes if n.beams.beamsList]

        assert beamed(to_music21(score)) == []
        assert len(beamed(to_music21(score, auto_beam=True))) == 4


class TestExportScore:
    """Tests for export_score."""

    def test_svg(self, tmp_path, two_measure_score):
        """Test the default format is SVG."""
        assert export_score(two_measure_score, tmp_path / "x").suffix == ".svg"

    def test_unknown_format(self, tmp_path, two_measure_score):
        """Test an unknown format raises ExportError."""
        with pytest.raises(ExportError):
            export_score(two_measure_score, tmp_path / "x", fmt="gif")
