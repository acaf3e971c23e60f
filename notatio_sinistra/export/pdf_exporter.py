"""
PDF Exporter - Export scores to paginated PDF sheet music.

Renders one SVG per page, converts each page with cairosvg and merges
the pages with PyPDF2.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Union, Optional
from dataclasses import dataclass, field
import logging
import tempfile

from PyPDF2 import PdfMerger

from notatio_sinistra.core.notation import Score
from notatio_sinistra.errors import ExportError
from notatio_sinistra.export.png_exporter import load_cairosvg
from notatio_sinistra.render import RenderOptions, SinistraRenderer

logger = logging.getLogger(__name__)


@dataclass
class PDFExportOptions:
    """Options for PDF export."""

    render_options: RenderOptions = field(default_factory=RenderOptions)
    lines_per_page: int = 6
    include_metadata: bool = True  # Title/composer in the document info


class PDFExporter:
    """
    Export scores to PDF format.

    Each page is a separate render; the title block is drawn on the
    first page only.
    """

    def __init__(self, options: Optional[PDFExportOptions] = None):
        """
        Initialize PDF exporter.

        Args:
            options: Export options, or None for defaults
        """
        self.options = options or PDFExportOptions()
        self.renderer = SinistraRenderer(self.options.render_options)

    def export(
        self,
        score: Score,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export a score to PDF format.

        Args:
            score: Score to export
            output_path: Output file path

        Returns:
            Path to created PDF file

        Raises:
            ExportError: If page conversion or merging fails.
        """
        output_path = Path(output_path)

        # Ensure .pdf extension
        if output_path.suffix.lower() != '.pdf':
            output_path = output_path.with_suffix('.pdf')

        # Create output directory if needed
        output_path.parent.mkdir(parents=True, exist_ok=True)

        pages = self.renderer.render_pages(score, self.options.lines_per_page)

        with tempfile.TemporaryDirectory() as temp_dir:
            pdf_paths = self._pages_to_pdf(pages, Path(temp_dir))
            merged = self._merge(pdf_paths, Path(temp_dir) / "merged.pdf", score)
            shutil.copy(merged, output_path)

        logger.info(f"Exported {len(pages)} page PDF to: {output_path}")
        return output_path

    def _pages_to_pdf(self, pages: list, temp_dir: Path) -> list:
        """
        Convert SVG pages to single-page PDFs.

        Args:
            pages: SVG documents, one per page
            temp_dir: Directory for the intermediate files

        Returns:
            List of PDF paths in page order
        """
        cairosvg = load_cairosvg()

        pdf_paths = []
        for i, svg in enumerate(pages, 1):
            pdf_path = temp_dir / f"page_{i}.pdf"
            try:
                cairosvg.svg2pdf(bytestring=svg.encode("utf-8"), write_to=str(pdf_path))
            except Exception as e:
                raise ExportError(f"PDF conversion of page {i} failed: {e}") from e
            pdf_paths.append(pdf_path)

        return pdf_paths

    def _merge(self, pdf_paths: list, merged_path: Path, score: Score) -> Path:
        """Merge page PDFs into one document."""
        merger = PdfMerger()
        try:
            for pdf_path in pdf_paths:
                merger.append(str(pdf_path))

            if self.options.include_metadata:
                metadata = {"/Producer": "Notatio Sinistra"}
                if score.title:
                    metadata["/Title"] = score.title
                if score.composer:
                    metadata["/Author"] = score.composer
                merger.add_metadata(metadata)

            merger.write(str(merged_path))
        except Exception as e:
            raise ExportError(f"Merging PDF pages failed: {e}") from e
        finally:
            merger.close()

        return merged_path

    @staticmethod
    def get_supported_extensions() -> list:
        """Get list of supported file extensions."""
        return [".pdf"]
