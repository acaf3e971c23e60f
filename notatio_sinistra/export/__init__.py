"""
Export module for Notatio Sinistra.

Provides exporters for various output formats:
- SVG (the renderer's native output)
- PNG and PDF (via cairosvg, PDF pages merged with PyPDF2)
- MusicXML (via music21)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from notatio_sinistra.core.notation import Score
from notatio_sinistra.errors import ExportError
from notatio_sinistra.export.svg_exporter import SVGExporter, SVGExportOptions
from notatio_sinistra.export.png_exporter import PNGExporter, PNGExportOptions
from notatio_sinistra.export.pdf_exporter import PDFExporter, PDFExportOptions
from notatio_sinistra.export.musicxml_exporter import MusicXMLExporter, MusicXMLExportOptions
from notatio_sinistra.render.options import RenderOptions

EXPORT_FORMATS = ("svg", "png", "pdf", "musicxml")


def export_score(
    score: Score,
    output_path: Union[str, Path],
    fmt: str = "svg",
    render_options: Optional[RenderOptions] = None,
    png_scale: float = 1.0,
    lines_per_page: int = 6,
) -> Path:
    """
    Export a score with the exporter for ``fmt``.

    Args:
        score: Score or SinistraScore to export
        output_path: Output file path (extension is corrected)
        fmt: One of EXPORT_FORMATS
        render_options: Layout for the image formats
        png_scale: Raster scale for PNG
        lines_per_page: Lines per PDF page

    Returns:
        Path to the written file

    Raises:
        ExportError: If the format is unknown or the export fails.
    """
    fmt = fmt.lower()
    render_options = render_options or RenderOptions()

    if fmt == "svg":
        exporter = SVGExporter(SVGExportOptions(render_options=render_options))
    elif fmt == "png":
        exporter = PNGExporter(PNGExportOptions(render_options=render_options, scale=png_scale))
    elif fmt == "pdf":
        exporter = PDFExporter(PDFExportOptions(render_options=render_options, lines_per_page=lines_per_page))
    elif fmt == "musicxml":
        exporter = MusicXMLExporter()
    else:
        raise ExportError(f"Unknown export format '{fmt}'. Supported: {', '.join(EXPORT_FORMATS)}")

    return exporter.export(score, output_path)


__all__ = [
    "EXPORT_FORMATS",
    "MusicXMLExporter",
    "MusicXMLExportOptions",
    "PDFExporter",
    "PDFExportOptions",
    "PNGExporter",
    "PNGExportOptions",
    "SVGExporter",
    "SVGExportOptions",
    "export_score",
]
