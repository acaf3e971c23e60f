"""
Measure engraving with Verovio.

Verovio engraves one measure (or one clef/key/time block) at a time from a
small MusicXML document. The renderer then places these fragments on its
own lines, which is where the reading direction is decided. Staff lines
and barlines are stripped from the fragments and drawn by the renderer
once per line.
"""

from __future__ import annotations

import copy
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from typing import Optional
import logging

from music21 import stream

from notatio_sinistra.core.music21_bridge import (
    M21_CLEFS,
    m21_key_of,
    m21_time_of,
    to_music21,
    to_musicxml_string,
)
from notatio_sinistra.core.notation import (
    Clef,
    KeySignature,
    Measure,
    MeasureContext,
    Score,
    Staff,
    TimeSignature,
    iter_measure_context,
)
from notatio_sinistra.core.sinistra import is_sinistra_score
from notatio_sinistra.errors import RenderError

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"

ET.register_namespace("xlink", XLINK_NAMESPACE)

# Half a staff space in Verovio units at scale 100
VEROVIO_UNIT = 9

# Groups the renderer draws itself, or that belong only at the line start
_CONTENT_STRIP = {"clef", "keySig", "meterSig", "meterSigGrp", "mNum", "barLine", "tempo", "pgHead", "pgFoot"}
_CONTEXT_STRIP = {"layer", "mNum", "barLine", "tempo", "pgHead", "pgFoot"}

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def load_verovio():
    """
    Import verovio.

    Raises:
        RenderError: If verovio is not installed.
    """
    try:
        import verovio
    except ImportError as e:
        raise RenderError("Rendering requires verovio. Install with: pip install verovio") from e
    return verovio


@dataclass
class Fragment:
    """
    An engraved SVG fragment and its staff geometry, in fragment pixels.

    ``content_left`` is where the notes start; for a clef/key/time block
    it equals ``staff_left``.
    """
    element: ET.Element
    staff_left: float
    staff_right: float
    staff_top: float
    staff_bottom: float
    content_left: float

    @property
    def staff_space(self) -> float:
        return (self.staff_bottom - self.staff_top) / 4

    @property
    def context_width(self) -> float:
        return self.staff_right - self.staff_left


def _numbers(text: Optional[str]) -> list[float]:
    return [float(v) for v in _NUMBER.findall(text or "")]


def _classes(element: ET.Element) -> set[str]:
    return set((element.get("class") or "").split())


def _tag(element: ET.Element) -> str:
    return element.tag.rsplit("}", 1)[-1]


def _use_x(element: ET.Element) -> Optional[float]:
    """Left edge of a glyph reference, from its x or its translate."""
    if element.get("x") is not None:
        return _numbers(element.get("x"))[0]
    transform = element.get("transform") or ""
    if transform.startswith("translate"):
        return _numbers(transform)[0]
    return None


def _strip(root: ET.Element, classes: set[str]) -> None:
    """Remove groups with any of ``classes`` and the staff-line paths."""
    for parent in list(root.iter()):
        is_staff = "staff" in _classes(parent)
        for child in list(parent):
            if _classes(child) & classes or (is_staff and _tag(child) == "path"):
                parent.remove(child)


def reading_contexts(score: Score, staff: Staff) -> dict[int, MeasureContext]:
    """Context in effect at each measure, by measure number, in reading order."""
    if is_sinistra_score(score):
        staff = replace(staff, measures=tuple(reversed(staff.measures)))
    return {measure.number: context for measure, context in iter_measure_context(staff, score)}


class MeasureEngraver:
    """
    Engraves single measures and clef/key/time blocks with Verovio.

    Example:
        engraver = MeasureEngraver(line_spacing=10)
        fragment = engraver.engrave_measure(score, measure, context, 220)
    """

    def __init__(self, line_spacing: float = 10.0):
        self.verovio = load_verovio()
        self.toolkit = self.verovio.toolkit()
        self.scale = max(1, round(line_spacing * 100 / (2 * VEROVIO_UNIT)))
        self.staff_space = 2 * VEROVIO_UNIT * self.scale / 100
        # Room Verovio keeps at the start of a one-measure system, per context
        self._lead_in: dict[tuple, float] = {}
        self._contexts: dict[tuple, Fragment] = {}

    def _page_width(self, width_px: float) -> int:
        return max(100, int(width_px * 100 / self.scale))

    def _engrave(self, musicxml: str, options: dict) -> ET.Element:
        settings = {
            "scale": self.scale,
            "pageHeight": 60000,
            "pageMarginTop": 0,
            "pageMarginBottom": 0,
            "pageMarginLeft": 0,
            "pageMarginRight": 0,
            "adjustPageHeight": True,
            "breaks": "auto",
            "mmOutput": False,
            "footer": "none",
            "header": "none",
        }
        settings.update(options)
        self.toolkit.setOptions(settings)

        if not self.toolkit.loadData(musicxml):
            raise RenderError("Verovio could not load the measure")
        svg = self.toolkit.renderToSVG(1)
        try:
            return ET.fromstring(svg)
        except ET.ParseError as e:
            raise RenderError(f"Verovio returned malformed SVG: {e}") from e

    def _measure(self, root: ET.Element) -> Fragment:
        """
        Read the staff geometry of an engraved page.

        Raises:
            RenderError: If the page has no scaled drawing or no staff.
        """
        width = _numbers(root.get("width"))
        inner = next((e for e in root.iter(f"{{{SVG_NAMESPACE}}}svg") if "definition-scale" in _classes(e)), None)
        if not width or inner is None or len(_numbers(inner.get("viewBox"))) != 4:
            raise RenderError("Unexpected Verovio output: no scaled drawing")

        min_x, min_y, view_width, _ = _numbers(inner.get("viewBox"))
        ratio = width[0] / view_width
        offset_x, offset_y = -min_x, -min_y
        margin = next((e for e in inner.iter() if "page-margin" in _classes(e)), None)
        if margin is not None:
            translate = _numbers(margin.get("transform"))
            if len(translate) >= 2:
                offset_x += translate[0]
                offset_y += translate[1]

        staff = next((e for e in inner.iter() if "staff" in _classes(e)), None)
        lines = [_numbers(p.get("d")) for p in staff.findall(f"{{{SVG_NAMESPACE}}}path")] if staff is not None else []
        lines = [d for d in lines if len(d) >= 4]
        if not lines:
            raise RenderError("Unexpected Verovio output: no staff lines")

        def px_x(value):
            return (offset_x + value) * ratio

        def px_y(value):
            return (offset_y + value) * ratio

        staff_left = px_x(min(d[0] for d in lines))
        lefts = [
            x
            for layer in inner.iter()
            if "layer" in _classes(layer)
            for x in (_use_x(e) for e in layer.iter(f"{{{SVG_NAMESPACE}}}use"))
            if x is not None
        ]
        content_left = staff_left
        if lefts:
            content_left = max(staff_left, px_x(min(lefts)) - self.staff_space / 2)

        fragment = Fragment(
            element=root,
            staff_left=staff_left,
            staff_right=px_x(max(d[2] for d in lines)),
            staff_top=px_y(min(d[1] for d in lines)),
            staff_bottom=px_y(max(d[1] for d in lines)),
            content_left=content_left,
        )
        if fragment.staff_space > 0:
            self.staff_space = fragment.staff_space
        return fragment

    def engrave_measure(
        self,
        score: Score,
        measure: Measure,
        context: MeasureContext,
        width: float,
    ) -> Fragment:
        """
        Engrave the notes of one measure to fill about ``width`` pixels.

        The measure is engraved with the context in effect so pitches sit on
        the right lines; the clef, key and time Verovio draws for it are
        stripped. A measure without beam markers is beamed by the meter
        before engraving.

        Raises:
            RenderError: If verovio is missing or fails on the measure.
        """
        staff = Staff(
            clef=context.clef,
            measures=(replace(measure, clef=None, key_signature=None, time_signature=None),),
        )
        single = replace(
            score,
            staves=(staff,),
            time_signature=context.time_signature,
            key_signature=context.key_signature,
            title=None,
            composer=None,
            tempo=None,
        )
        musicxml = to_musicxml_string(to_music21(single, include_credits=False, auto_beam=True))

        key = (context.clef, context.key_signature, context.time_signature)
        lead_in = self._lead_in.get(key)
        root = self._engrave(musicxml, {
            "pageWidth": self._page_width(width + (lead_in or 0)),
            "minLastJustification": 0,
        })
        fragment = self._measure(root)

        if lead_in is None:
            lead_in = fragment.content_left - fragment.staff_left
            self._lead_in[key] = lead_in
            if lead_in > 0:
                fragment = self._measure(self._engrave(musicxml, {
                    "pageWidth": self._page_width(width + lead_in),
                    "minLastJustification": 0,
                }))

        _strip(fragment.element, _CONTENT_STRIP)
        logger.debug(f"Engraved measure {measure.number}")
        return fragment

    def engrave_context(
        self,
        clef: Clef,
        key_signature: Optional[KeySignature] = None,
        time_signature: Optional[TimeSignature] = None,
    ) -> Fragment:
        """
        Engrave a clef, with the key and time when given, as a bare block.

        Its width is ``context_width``.
        """
        cache_key = (clef, key_signature, time_signature)
        if cache_key in self._contexts:
            return self._copy(self._contexts[cache_key])

        m = stream.Measure(number=1)
        m.insert(0, M21_CLEFS[clef]())
        if key_signature is not None:
            m.insert(0, m21_key_of(key_signature))
        if time_signature is not None:
            m.insert(0, m21_time_of(time_signature))
        part = stream.Part(id="P1")
        part.append(m)
        m21_score = stream.Score()
        m21_score.insert(0, part)

        root = self._engrave(to_musicxml_string(m21_score), {
            "pageWidth": self._page_width(20 * self.staff_space),
            "adjustPageWidth": True,
            "measureMinWidth": 1,
            "minLastJustification": 1,
        })
        fragment = self._measure(root)
        fragment.content_left = fragment.staff_left
        _strip(fragment.element, _CONTEXT_STRIP)

        self._contexts[cache_key] = fragment
        return self._copy(fragment)

    @staticmethod
    def _copy(fragment: Fragment) -> Fragment:
        return replace(fragment, element=copy.deepcopy(fragment.element))
