"""
PNG Exporter - Rasterize the rendered SVG with cairosvg.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union, Optional
from dataclasses import dataclass, field
import logging

from notatio_sinistra.core.notation import Score
from notatio_sinistra.errors import ExportError
from notatio_sinistra.render import RenderOptions, SinistraRenderer

logger = logging.getLogger(__name__)


@dataclass
class PNGExportOptions:
    """Options for PNG export."""

    render_options: RenderOptions = field(default_factory=RenderOptions)
    scale: float = 1.0  # 2.0 for high-DPI output
    background_color: str = "white"


def load_cairosvg():
    """
    Import cairosvg, which also needs the system cairo library.

    Raises:
        ExportError: If cairosvg or libcairo is unavailable.
    """
    try:
        import cairosvg
    except (ImportError, OSError) as e:
        raise ExportError(
            "Image export requires cairosvg and the cairo library. "
            "Install with: pip install cairosvg"
        ) from e
    return cairosvg


class PNGExporter:
    """Export scores to PNG images."""

    def __init__(self, options: Optional[PNGExportOptions] = None):
        """
        Initialize PNG exporter.

        Args:
            options: Export options, or None for defaults
        """
        self.options = options or PNGExportOptions()
        self.renderer = SinistraRenderer(self.options.render_options)

    def export(
        self,
        score: Score,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export a score to PNG format.

        Args:
            score: Score to export
            output_path: Output file path

        Returns:
            Path to created PNG file

        Raises:
            ExportError: If the SVG cannot be rasterized.
        """
        output_path = Path(output_path)

        # Ensure .png extension
        if output_path.suffix.lower() != '.png':
            output_path = output_path.with_suffix('.png')

        # Create output directory if needed
        output_path.parent.mkdir(parents=True, exist_ok=True)

        output_path.write_bytes(self.export_to_bytes(score))

        logger.info(f"Exported PNG to: {output_path}")
        return output_path

    def export_to_bytes(self, score: Score) -> bytes:
        """Render and rasterize a score, returning PNG data."""
        cairosvg = load_cairosvg()
        svg = self.renderer.render(score)

        try:
            return cairosvg.svg2png(
                bytestring=svg.encode("utf-8"),
                scale=self.options.scale,
                background_color=self.options.background_color,
            )
        except Exception as e:
            raise ExportError(f"PNG conversion failed: {e}") from e

    @staticmethod
    def get_supported_extensions() -> list:
        """Get list of supported file extensions."""
        return [".png"]
