"""
Command Parser - Parse text commands for manual note entry.

A small line-oriented syntax that maps one-to-one onto the manual entry
operations, so a score can be typed or scripted instead of clicked.

Syntax Examples:
    C4 q                # C4 quarter note
    F#5 h               # F sharp 5, half note
    Bb3 e  Cn4 e        # several notes on one line
    r q                 # Quarter rest
    |                   # Next measure (also: measure)
    undo                # Remove the last entry
    clear               # Start over

Duration codes:
    w = whole, h = half, q = quarter, e = eighth, s = sixteenth,
    t = thirty-second. A note without a code is a quarter.

Pitch format:
    Step + Accidental (optional) + Octave
    C4, D#5, Bb3, F##4, Ebb2, Cn4 (n = natural)

Special commands:
    key: G major        # Tonic + mode, or fifths count: key: -3 minor
    time: 3/4           # Time signature
    clef: bass          # treble, bass, alto, tenor
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import logging

from notatio_sinistra.core.notation import Accidental, NoteDuration, Step

logger = logging.getLogger(__name__)


class Duration(Enum):
    """Duration codes accepted in commands."""
    WHOLE = "w"
    HALF = "h"
    QUARTER = "q"
    EIGHTH = "e"
    SIXTEENTH = "s"
    THIRTYSECOND = "t"

    @classmethod
    def from_code(cls, code: str) -> Optional["Duration"]:
        """Get duration from code letter."""
        code = code.lower()
        for d in cls:
            if d.value == code:
                return d
        return None

    def to_note_duration(self) -> NoteDuration:
        """Convert to the model's duration type."""
        mapping = {
            Duration.WHOLE: NoteDuration.WHOLE,
            Duration.HALF: NoteDuration.HALF,
            Duration.QUARTER: NoteDuration.QUARTER,
            Duration.EIGHTH: NoteDuration.EIGHTH,
            Duration.SIXTEENTH: NoteDuration.SIXTEENTH,
            Duration.THIRTYSECOND: NoteDuration.THIRTYSECOND,
        }
        return mapping.get(self, NoteDuration.QUARTER)


@dataclass
class ParsedNote:
    """Represents a parsed note."""
    step: Step
    octave: int
    accidental: Accidental = Accidental.NONE
    duration: Duration = Duration.QUARTER

    @property
    def pitch_name(self) -> str:
        """Pitch with octave, e.g. 'C#4'."""
        return f"{self.step.value}{self.accidental.text}{self.octave}"


@dataclass
class ParsedRest:
    """Represents a parsed rest."""
    duration: Duration = Duration.QUARTER


@dataclass
class ParsedBarline:
    """Represents a move to the next measure."""


@dataclass
class ParsedCommand:
    """Represents a special command."""
    command: str  # key, time, clef, undo, clear
    value: str = ""


# Type alias for parsed elements
ParsedElement = Union[ParsedNote, ParsedRest, ParsedBarline, ParsedCommand]


class CommandParseError(Exception):
    """Error during command parsing."""
    def __init__(self, message: str, position: int = 0, line: int = 1):
        super().__init__(message)
        self.position = position
        self.line = line


class CommandParser:
    """
    Parser for text-based note entry commands.

    Malformed lines are recorded in ``errors`` and skipped so the rest of
    the input still parses.
    """

    PITCH_PATTERN = re.compile(
        r"^([A-Ga-g])(##|bb|#|b|n)?(-?\d)$"
    )
    DURATION_PATTERN = re.compile(
        r"^([whqest])$", re.IGNORECASE
    )
    COMMAND_PATTERN = re.compile(
        r"^(key|time|clef):\s*(.+)$", re.IGNORECASE
    )
    TIME_PATTERN = re.compile(r"^(\d+)\s*/\s*(\d+)$")
    BARLINE_TOKENS = {"|", "measure"}
    BARE_COMMANDS = {"undo", "clear"}

    ACCIDENTAL_CODES = {
        "#": Accidental.SHARP,
        "##": Accidental.DOUBLE_SHARP,
        "b": Accidental.FLAT,
        "bb": Accidental.DOUBLE_FLAT,
        "n": Accidental.NATURAL,
    }

    def __init__(self):
        self.errors: list[CommandParseError] = []

    def parse(self, text: str) -> list[ParsedElement]:
        """
        Parse a string of commands into entry elements.

        Args:
            text: Input text, one or more lines

        Returns:
            List of parsed elements in input order
        """
        self.errors = []
        elements: list[ParsedElement] = []

        for line_num, line in enumerate(text.strip().split("\n"), 1):
            line = line.strip()
            if not line or line.startswith("#"):
                # Skip empty lines and comments
                continue

            try:
                elements.extend(self._parse_line(line))
            except CommandParseError as e:
                e.line = line_num
                self.errors.append(e)
                logger.warning(f"Line {line_num}: {e}")

        return elements

    def _parse_line(self, line: str) -> list[ParsedElement]:
        """Parse a single line of input."""
        cmd_match = self.COMMAND_PATTERN.match(line)
        if cmd_match:
            command = cmd_match.group(1).lower()
            value = cmd_match.group(2).strip()
            if command == "time" and not self.TIME_PATTERN.match(value):
                raise CommandParseError(f"Invalid time signature: {value}")
            return [ParsedCommand(command=command, value=value)]

        if line.lower() in self.BARE_COMMANDS:
            return [ParsedCommand(command=line.lower())]

        elements: list[ParsedElement] = []
        tokens = line.split()
        i = 0
        while i < len(tokens):
            token = tokens[i]

            if token.lower() in self.BARLINE_TOKENS:
                elements.append(ParsedBarline())
                i += 1
                continue

            if token.lower() == "r":
                duration = self._duration_at(tokens, i + 1)
                elements.append(ParsedRest(duration=duration or Duration.QUARTER))
                i += 2 if duration else 1
                continue

            if token.lower() in self.BARE_COMMANDS:
                elements.append(ParsedCommand(command=token.lower()))
                i += 1
                continue

            note = self._parse_pitch(token)
            if note is not None:
                duration = self._duration_at(tokens, i + 1)
                if duration:
                    note.duration = duration
                elements.append(note)
                i += 2 if duration else 1
                continue

            # Unknown token - skip with warning
            logger.warning(f"Unknown token: {token}")
            i += 1

        return elements

    def _duration_at(self, tokens: list[str], index: int) -> Optional[Duration]:
        if index < len(tokens) and self.DURATION_PATTERN.match(tokens[index]):
            return Duration.from_code(tokens[index])
        return None

    def _parse_pitch(self, token: str) -> Optional[ParsedNote]:
        match = self.PITCH_PATTERN.match(token)
        if not match:
            return None
        return ParsedNote(
            step=Step(match.group(1).upper()),
            accidental=self.ACCIDENTAL_CODES.get(match.group(2) or "", Accidental.NONE),
            octave=int(match.group(3)),
        )

    def validate(self, text: str) -> list[CommandParseError]:
        """
        Validate input without keeping the parsed elements.

        Returns:
            List of validation errors
        """
        self.parse(text)
        return self.errors


def format_help() -> str:
    """Return help text for the command syntax."""
    return """
NOTES
  C4 q       C4 quarter note       (w h q e s t = whole .. 32nd)
  F#5 h      F sharp half note     (# ## b bb n = accidentals)
  Bb3        B flat quarter note   (duration defaults to quarter)

RESTS
  r q        quarter rest

MEASURES
  |          move to the next measure (also: measure)
  undo       remove the last entry
  clear      start over

CONTEXT
  clef: bass         treble, bass, alto, tenor
  time: 3/4
  key: Bb major      or a fifths count: key: -2 minor

Lines starting with # are comments.
"""
