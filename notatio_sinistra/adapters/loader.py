"""
Pick a source adapter by file extension and load a score.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union
import logging

from notatio_sinistra.adapters.base import SourceAdapter
from notatio_sinistra.adapters.midi_adapter import MidiAdapter
from notatio_sinistra.adapters.musicxml_adapter import MusicXMLAdapter
from notatio_sinistra.core.notation import Score
from notatio_sinistra.errors import UnsupportedFormatError

logger = logging.getLogger(__name__)

ADAPTERS: list[type[SourceAdapter]] = [MusicXMLAdapter, MidiAdapter]


def get_supported_extensions() -> list[str]:
    """All extensions some adapter can read."""
    return [ext for adapter in ADAPTERS for ext in adapter.get_supported_extensions()]


def get_adapter(filepath: Union[str, Path]) -> SourceAdapter:
    """
    Get the adapter for a file based on its extension.

    Raises:
        UnsupportedFormatError: If no adapter handles the extension.
    """
    ext = Path(filepath).suffix.lower()
    for adapter_class in ADAPTERS:
        if ext in adapter_class.get_supported_extensions():
            return adapter_class()

    supported = ", ".join(get_supported_extensions())
    raise UnsupportedFormatError(
        f"Unsupported file extension '{ext or filepath}'. Supported: {supported}"
    )


def load_score(filepath: Union[str, Path]) -> Score:
    """
    Load a MusicXML or MIDI file into a Score.

    Raises:
        FileNotFoundError: If the file does not exist.
        UnsupportedFormatError: If the extension is not recognised.
        SourceFormatError: If the file content is malformed.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    adapter = get_adapter(filepath)
    logger.debug(f"Loading {filepath} with {type(adapter).__name__}")
    return adapter.read_file(filepath)
