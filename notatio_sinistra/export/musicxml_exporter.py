"""
MusicXML Exporter - Export scores to MusicXML format.

The model is converted to a music21 stream measure by measure, keeping
measure numbers and the stored element order, so a SinistraScore is
written in its mirrored order with its beams and ties reading forwards.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union, Optional
from dataclasses import dataclass
import logging

from music21 import stream

from notatio_sinistra.core.music21_bridge import to_music21, to_musicxml_string
from notatio_sinistra.core.notation import Score
from notatio_sinistra.errors import ExportError

logger = logging.getLogger(__name__)

@dataclass
class MusicXMLExportOptions:
    """Options for MusicXML export."""

    compressed: bool = False  # Export as .mxl (compressed) vs .musicxml
    include_credits: bool = True  # Include title/composer metadata


class MusicXMLExporter:
    """
    Export scores to MusicXML format.

    MusicXML is the standard interchange format for music notation
    software like MuseScore, Finale, and Sibelius.
    """

    def __init__(self, options: Optional[MusicXMLExportOptions] = None):
        """
        Initialize MusicXML exporter.

        Args:
            options: Export options, or None for defaults
        """
        self.options = options or MusicXMLExportOptions()

    def export(
        self,
        score: Score,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export a score to MusicXML format.

        Args:
            score: Score to export
            output_path: Output file path

        Returns:
            Path to created MusicXML file

        Raises:
            ExportError: If music21 cannot build or write the document.
        """
        output_path = Path(output_path)

        # Determine format based on extension or options
        if self.options.compressed or output_path.suffix.lower() == '.mxl':
            format_type = 'mxl'
            if output_path.suffix.lower() != '.mxl':
                output_path = output_path.with_suffix('.mxl')
        else:
            format_type = 'musicxml'
            if output_path.suffix.lower() not in ['.musicxml', '.xml']:
                output_path = output_path.with_suffix('.musicxml')

        # Create output directory if needed
        output_path.parent.mkdir(parents=True, exist_ok=True)

        m21_score = self.to_music21(score)

        try:
            m21_score.write(format_type, fp=str(output_path), makeNotation=False)
        except OSError:
            raise
        except Exception as e:
            raise ExportError(f"MusicXML export failed: {e}") from e

        logger.info(f"Exported MusicXML to: {output_path}")
        return output_path

    def export_to_string(self, score: Score) -> str:
        """
        Export score to MusicXML string.

        Args:
            score: Score to export

        Returns:
            MusicXML content as string
        """
        m21_score = self.to_music21(score)
        try:
            return to_musicxml_string(m21_score)
        except Exception as e:
            raise ExportError(f"MusicXML export failed: {e}") from e

    def to_music21(self, score: Score) -> stream.Score:
        """
        Convert a Score to a music21 Score.

        Raises:
            ExportError: If music21 rejects part of the model.
        """
        try:
            return to_music21(score, include_credits=self.options.include_credits)
        except Exception as e:
            raise ExportError(f"Cannot convert score to music21: {e}") from e

    @staticmethod
    def get_supported_extensions() -> list:
        """Get list of supported file extensions."""
        return [".musicxml", ".xml", ".mxl"]
