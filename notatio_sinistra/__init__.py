"""
Notatio Sinistra - Right-to-left sheet music

Converts Western notation read from MusicXML or MIDI into a mirrored
score for right-to-left reading, and engraves either orientation to
SVG, PNG or PDF.
"""

__version__ = "1.0.0"

from notatio_sinistra.core.notation import Score, SinistraScore
from notatio_sinistra.core.sinistra import restore_from_sinistra, transform_to_sinistra
from notatio_sinistra.config import Config

__all__ = [
    "Score",
    "SinistraScore",
    "Config",
    "transform_to_sinistra",
    "restore_from_sinistra",
    "__version__",
]
