"""
Source adapters for Notatio Sinistra.

Read MusicXML (via music21) and MIDI (via mido) into the notation model.
"""

from notatio_sinistra.adapters.base import SourceAdapter
from notatio_sinistra.adapters.musicxml_adapter import MusicXMLAdapter
from notatio_sinistra.adapters.midi_adapter import MidiAdapter
from notatio_sinistra.adapters.loader import get_adapter, get_supported_extensions, load_score

__all__ = [
    "SourceAdapter",
    "MusicXMLAdapter",
    "MidiAdapter",
    "get_adapter",
    "get_supported_extensions",
    "load_score",
]
