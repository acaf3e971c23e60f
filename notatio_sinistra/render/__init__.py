"""
Render module for Notatio Sinistra.

Lays out Score and SinistraScore values as standalone SVG documents,
with Verovio engraving the measures.
"""

from notatio_sinistra.render.engraver import Fragment, MeasureEngraver, load_verovio
from notatio_sinistra.render.options import RenderOptions
from notatio_sinistra.render.svg_renderer import (
    RenderTarget,
    SinistraRenderer,
    Slot,
    StaffLine,
    render_target,
)

__all__ = [
    "Fragment",
    "MeasureEngraver",
    "RenderOptions",
    "RenderTarget",
    "SinistraRenderer",
    "Slot",
    "StaffLine",
    "load_verovio",
    "render_target",
]
