"""
Base class for source adapters.

An adapter turns the bytes or text of a foreign file format into a
complete Score, or raises SourceFormatError. It never hands back a
partially built model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union
import logging

from notatio_sinistra.core.notation import Score
from notatio_sinistra.errors import SourceFormatError

logger = logging.getLogger(__name__)


class SourceAdapter(ABC):
    """Reads one source format into the notation model."""

    #: Format name used in log and error messages.
    format_name: str = ""

    @staticmethod
    @abstractmethod
    def get_supported_extensions() -> list:
        """Get list of supported file extensions."""

    @abstractmethod
    def read(self, data: Union[bytes, str]) -> Score:
        """
        Build a Score from raw file content.

        Raises:
            SourceFormatError: If the content is malformed.
        """

    def read_file(self, filepath: Union[str, Path]) -> Score:
        """
        Build a Score from a file on disk.

        Raises:
            FileNotFoundError: If the file does not exist.
            SourceFormatError: If the content is malformed.
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        try:
            data = filepath.read_bytes()
        except OSError as e:
            raise SourceFormatError(f"Cannot read {filepath}: {e}") from e

        score = self.read(data)
        logger.info(
            f"Loaded {self.format_name} {filepath.name}: "
            f"{score.num_staves} staves, {score.num_measures} measures"
        )
        return score
