"""
SVG Exporter - Write the rendered score as a standalone SVG file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union, Optional
from dataclasses import dataclass, field
import logging

from notatio_sinistra.core.notation import Score
from notatio_sinistra.render import RenderOptions, SinistraRenderer

logger = logging.getLogger(__name__)


@dataclass
class SVGExportOptions:
    """Options for SVG export."""

    render_options: RenderOptions = field(default_factory=RenderOptions)


class SVGExporter:
    """
    Export scores to SVG.

    The SVG is the renderer's own output; the other image formats are
    converted from it.
    """

    def __init__(self, options: Optional[SVGExportOptions] = None):
        """
        Initialize SVG exporter.

        Args:
            options: Export options, or None for defaults
        """
        self.options = options or SVGExportOptions()
        self.renderer = SinistraRenderer(self.options.render_options)

    def export(
        self,
        score: Score,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export a score to SVG format.

        Args:
            score: Score or SinistraScore to export
            output_path: Output file path

        Returns:
            Path to created SVG file
        """
        output_path = Path(output_path)

        # Ensure .svg extension
        if output_path.suffix.lower() != '.svg':
            output_path = output_path.with_suffix('.svg')

        # Create output directory if needed
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output_path.write_text(self.export_to_string(score), encoding="utf-8")

        logger.info(f"Exported SVG to: {output_path}")
        return output_path

    def export_to_string(self, score: Score) -> str:
        """
        Render score to SVG text.

        Args:
            score: Score to render

        Returns:
            SVG document as string
        """
        return self.renderer.render(score)

    @staticmethod
    def get_supported_extensions() -> list:
        """Get list of supported file extensions."""
        return [".svg"]
