"""
SVG renderer - lay out a Score or SinistraScore as a standalone SVG.

Verovio engraves each measure, and the renderer decides where the
measures go. Left-to-right lines start at the left margin with the clef,
key and time before the leftmost measure. Right-to-left lines are
anchored on the right margin and the clef block sits at the right edge of
the rightmost measure, the first one a right-to-left reader meets.

Drawing goes through a RenderTarget, an in-memory ElementTree that is
acquired and released by :func:`render_target`.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence
import logging

from notatio_sinistra.core.notation import Measure, MeasureContext, Score, Staff
from notatio_sinistra.core.sinistra import calculate_system_layout, is_sinistra_score
from notatio_sinistra.errors import RenderError
from notatio_sinistra.render.engraver import (
    SVG_NAMESPACE,
    Fragment,
    MeasureEngraver,
    reading_contexts,
)
from notatio_sinistra.render.options import RenderOptions

logger = logging.getLogger(__name__)

# Room above the top staff line inside each stave row
STAFF_OFFSET = 40
HEADER_HEIGHT = 60
CONTENT_PADDING = 4


def _format_value(value) -> str:
    if isinstance(value, float):
        return f"{value:.2f}".rstrip("0").rstrip(".")
    return str(value)


def _svg(tag: str) -> str:
    return f"{{{SVG_NAMESPACE}}}{tag}"


class RenderTarget:
    """
    An in-memory SVG document being drawn into.

    Keyword attributes use underscores for hyphens (``font_size`` ->
    ``font-size``); a trailing underscore is dropped (``class_``).
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.root: Optional[ET.Element] = ET.Element(
            _svg("svg"),
            {
                "version": "1.1",
                "width": _format_value(width),
                "height": _format_value(height),
                "viewBox": f"0 0 {_format_value(width)} {_format_value(height)}",
            },
        )

    @property
    def closed(self) -> bool:
        return self.root is None

    def add(
        self,
        tag: str,
        parent: Optional[ET.Element] = None,
        text: Optional[str] = None,
        **attrs,
    ) -> ET.Element:
        """Append an SVG element and return it."""
        if self.root is None:
            raise RenderError("Render target is closed")

        attributes = {
            name.rstrip("_").replace("_", "-"): _format_value(value)
            for name, value in attrs.items()
            if value is not None
        }
        element = ET.SubElement(parent if parent is not None else self.root, _svg(tag), attributes)
        if text is not None:
            element.text = text
        return element

    def place(self, element: ET.Element, parent: ET.Element, transform: str) -> ET.Element:
        """Append an engraved fragment under a transformed group."""
        group = self.add("g", parent, transform=transform)
        group.append(element)
        return group

    def to_string(self) -> str:
        """Serialize the document, XML declaration included."""
        if self.root is None:
            raise RenderError("Render target is closed")
        body = ET.tostring(self.root, encoding="unicode", default_namespace=SVG_NAMESPACE)
        return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}'

    def release(self) -> None:
        self.root = None


@contextmanager
def render_target(options: RenderOptions, height: Optional[int] = None) -> Iterator[RenderTarget]:
    """
    Acquire a RenderTarget sized from the options, releasing it on exit.

    The target is released on every exit path, including errors raised
    while drawing, and can no longer be drawn into afterwards.
    """
    target = RenderTarget(options.width, height or options.height)
    try:
        yield target
    finally:
        target.release()


@dataclass
class StaffLine:
    """One visual line: a chunk of a staff's measures."""
    staff_index: int
    staff: Staff
    line_index: int
    measures: tuple[Measure, ...]


@dataclass
class Slot:
    """Where one measure goes on a line, in page pixels."""
    measure: Measure
    x: float
    is_line_start: bool


class SinistraRenderer:
    """
    Lays out scores as SVG in either reading direction.

    Example:
        renderer = SinistraRenderer(RenderOptions(measures_per_line=3))
        svg = renderer.render(transform_to_sinistra(score))
    """

    def __init__(self, options: Optional[RenderOptions] = None):
        self.options = options or RenderOptions()
        self._engraver: Optional[MeasureEngraver] = None

    @property
    def engraver(self) -> MeasureEngraver:
        """Verovio engraver, created on first use."""
        if self._engraver is None:
            self._engraver = MeasureEngraver(self.options.line_spacing)
        return self._engraver

    def is_right_to_left(self, score: Score) -> bool:
        """Orientation for ``score``: the forced flag, else the score's tag."""
        if self.options.is_sinistra is None:
            return is_sinistra_score(score)
        return self.options.is_sinistra

    def layout_lines(self, score: Score) -> list[StaffLine]:
        """Split every staff into lines, staff after staff."""
        lines = []
        for staff_index, staff in enumerate(score.staves):
            layout = calculate_system_layout(staff, self.options.measures_per_line)
            for line_index, measures in enumerate(layout.systems):
                lines.append(StaffLine(staff_index, staff, line_index, measures))
        return lines

    def slots(self, line: StaffLine, page_width: float, rtl: bool) -> list[Slot]:
        """
        Measure positions for a line, in stored order.

        Right-to-left lines end at the right margin, so stored index 0 is
        leftmost and the last stored measure is the line start.
        """
        opts = self.options
        count = len(line.measures)
        result = []
        for index, measure in enumerate(line.measures):
            if rtl:
                x = page_width - opts.margin_left - (count - index) * opts.stave_width
                is_line_start = index == count - 1
            else:
                x = opts.margin_left + index * opts.stave_width
                is_line_start = index == 0
            result.append(Slot(measure, x, is_line_start))
        return result

    def render(self, score: Score) -> str:
        """
        Render a whole score to one SVG document.

        Returns:
            SVG text
        """
        return self._render_page(score, self.layout_lines(score), include_header=True)

    def render_pages(self, score: Score, lines_per_page: int) -> list[str]:
        """
        Render a score as pages holding at most ``lines_per_page`` lines.

        The title block only appears on the first page.

        Raises:
            ValueError: If lines_per_page is less than 1.
        """
        if lines_per_page < 1:
            raise ValueError(f"lines_per_page must be at least 1, got {lines_per_page}")

        lines = self.layout_lines(score)
        if not lines:
            return [self._render_page(score, [], include_header=True)]

        pages = [lines[i:i + lines_per_page] for i in range(0, len(lines), lines_per_page)]
        return [
            self._render_page(score, page, include_header=index == 0)
            for index, page in enumerate(pages)
        ]

    def _page_height(self, score: Score, num_lines: int, include_header: bool) -> int:
        header = HEADER_HEIGHT if include_header and (score.title or score.composer) else 0
        needed = 2 * self.options.margin_top + header + num_lines * self.options.stave_height
        return max(self.options.height, needed)

    def _render_page(self, score: Score, lines: Sequence[StaffLine], include_header: bool) -> str:
        height = self._page_height(score, len(lines), include_header)
        with render_target(self.options, height) as target:
            self.draw(target, score, lines, include_header)
            svg = target.to_string()
        logger.debug(f"Rendered {len(lines)} lines ({'rtl' if self.is_right_to_left(score) else 'ltr'})")
        return svg

    def draw(
        self,
        target: Optional[RenderTarget],
        score: Score,
        lines: Optional[Sequence[StaffLine]] = None,
        include_header: bool = True,
    ) -> None:
        """
        Draw ``lines`` of ``score`` (all of them by default) into a target.

        Raises:
            RenderError: If the target is missing or already released, or
                verovio cannot engrave a measure.
        """
        if target is None or target.closed:
            raise RenderError("No render target available")

        if lines is None:
            lines = self.layout_lines(score)
        rtl = self.is_right_to_left(score)

        target.add("rect", x=0, y=0, width=target.width, height=target.height, fill="white")

        top = self.options.margin_top
        if include_header and (score.title or score.composer):
            self._draw_header(target, score, rtl)
            top += HEADER_HEIGHT

        contexts: dict[int, dict[int, MeasureContext]] = {}
        for row, line in enumerate(lines):
            if line.staff_index not in contexts:
                contexts[line.staff_index] = reading_contexts(score, line.staff)
            self._draw_line(
                target, score, line, contexts[line.staff_index],
                top + row * self.options.stave_height, rtl,
            )

    def _draw_header(self, target: RenderTarget, score: Score, rtl: bool) -> None:
        group = target.add("g", class_="header")
        if score.title:
            target.add(
                "text", group, score.title,
                x=target.width / 2, y=self.options.margin_top + 20,
                font_size=24, font_family="serif", text_anchor="middle",
            )
        if score.composer:
            # Composer sits at the end edge of the reading direction
            x = self.options.margin_left if rtl else target.width - self.options.margin_left
            target.add(
                "text", group, score.composer,
                x=x, y=self.options.margin_top + 45,
                font_size=14, font_family="serif",
                text_anchor="start" if rtl else "end",
            )

    def _draw_line(
        self,
        target: RenderTarget,
        score: Score,
        line: StaffLine,
        contexts: dict[int, MeasureContext],
        top: float,
        rtl: bool,
    ) -> None:
        width = self.options.stave_width
        staff_top = top + STAFF_OFFSET
        group = target.add(
            "g", class_="staff-line",
            data_staff=line.staff_index + 1, data_line=line.line_index + 1,
        )
        # Filled in once the engraved staff space is known
        staff_lines = target.add("g", group, class_="staff-lines")

        slots = self.slots(line, target.width, rtl)
        for slot in slots:
            bar = target.add("g", group, class_="bar", data_number=slot.measure.number)
            start, end = slot.x, slot.x + width

            if slot.is_line_start:
                start, end = self._draw_context(target, bar, line, contexts, slot, staff_top, rtl)

            if self.options.show_measure_numbers:
                target.add(
                    "text", bar, str(slot.measure.number),
                    x=slot.x + width - 2 if rtl else slot.x + 2, y=staff_top - 15,
                    font_size=10, font_family="serif",
                    text_anchor="end" if rtl else "start",
                    class_="measure-number",
                )

            room = end - start - 2 * CONTENT_PADDING
            if slot.measure.elements and room <= 0:
                logger.warning(f"No room left for the notes of measure {slot.measure.number}")
            elif slot.measure.elements:
                fragment = self.engraver.engrave_measure(
                    score, slot.measure, contexts[slot.measure.number], room,
                )
                self._place(target, bar, fragment, start + CONTENT_PADDING, end - CONTENT_PADDING, staff_top)

        if not slots:
            return

        space = self.engraver.staff_space
        left = min(slot.x for slot in slots)
        right = max(slot.x for slot in slots) + width
        bottom = staff_top + 4 * space
        for i in range(5):
            y = staff_top + i * space
            target.add("line", staff_lines, x1=left, y1=y, x2=right, y2=y, stroke="black", stroke_width=1)

        # Each measure is closed on the side its reader leaves it
        for slot in slots:
            bar_x = slot.x if rtl else slot.x + width
            target.add(
                "line", staff_lines,
                x1=bar_x, y1=staff_top, x2=bar_x, y2=bottom,
                stroke="black", stroke_width=1.2, class_="barline",
            )

    def _draw_context(
        self,
        target: RenderTarget,
        parent: ET.Element,
        line: StaffLine,
        contexts: dict[int, MeasureContext],
        slot: Slot,
        staff_top: float,
        rtl: bool,
    ) -> tuple[float, float]:
        """
        Place the clef (and key and time on a staff's first line) at the line start.

        Returns:
            The span of the slot left for the measure's notes
        """
        context = contexts[slot.measure.number]
        first_line = line.line_index == 0
        fragment = self.engraver.engrave_context(
            context.clef,
            context.key_signature if first_line else None,
            context.time_signature if first_line else None,
        )

        used = fragment.context_width
        if rtl:
            left = slot.x + self.options.stave_width - used
            start, end = slot.x, left
        else:
            left = slot.x
            start, end = slot.x + used, slot.x + self.options.stave_width

        group = self._place(target, parent, fragment, left, left + used, staff_top)
        group.set("class", "context")
        return start, end

    def _place(
        self,
        target: RenderTarget,
        parent: ET.Element,
        fragment: Fragment,
        left: float,
        right: float,
        staff_top: float,
    ) -> ET.Element:
        """Fit a fragment's content between ``left`` and ``right`` on the staff."""
        span = fragment.staff_right - fragment.content_left
        scale = (right - left) / span if span > 0 else 1.0
        dx = left - scale * fragment.content_left
        dy = staff_top - fragment.staff_top
        transform = f"translate({_format_value(dx)},{_format_value(dy)})"
        if abs(scale - 1.0) > 1e-3:
            transform += f" scale({_format_value(scale)},1)"
        return target.place(fragment.element, parent, transform)
