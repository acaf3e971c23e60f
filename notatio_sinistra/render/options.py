"""
Layout options for the renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class RenderOptions:
    """Options for rendering a score to SVG."""

    width: int = 1200
    height: int = 800
    measures_per_line: int = 4
    stave_width: int = 250
    stave_height: int = 150
    margin_left: int = 50
    margin_top: int = 50

    # None: follow the score's own orientation tag
    is_sinistra: Optional[bool] = None

    show_measure_numbers: bool = True
    line_spacing: float = 10.0  # distance between staff lines, px

    def __post_init__(self):
        if self.measures_per_line < 1:
            raise ValueError(
                f"measures_per_line must be at least 1, got {self.measures_per_line}"
            )
        if self.line_spacing <= 0:
            raise ValueError(f"line_spacing must be positive, got {self.line_spacing}")
