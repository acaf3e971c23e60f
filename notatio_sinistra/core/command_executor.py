"""
Command Executor - Apply parsed commands to a manual entry state.

Bridges the CommandParser output and the manual entry state machine:
each parsed element becomes one state transition.
"""

from __future__ import annotations

from typing import Optional
import logging

from notatio_sinistra.core import manual_entry
from notatio_sinistra.core.manual_entry import ManualEntryState
from notatio_sinistra.core.notation import Clef, KeySignature, Mode, Score
from notatio_sinistra.core.command_parser import (
    CommandParser,
    ParsedBarline,
    ParsedCommand,
    ParsedElement,
    ParsedNote,
    ParsedRest,
)

logger = logging.getLogger(__name__)


class CommandExecutor:
    """
    Folds parsed elements through the manual entry operations.

    Provides methods for:
    - Applying elements to an existing state
    - Creating new Scores from elements
    """

    def apply(
        self,
        state: ManualEntryState,
        elements: list[ParsedElement],
    ) -> ManualEntryState:
        """
        Apply parsed elements to a state.

        Args:
            state: Starting state
            elements: Elements from CommandParser

        Returns:
            State after every element has been applied
        """
        for elem in elements:
            state = self._apply_element(state, elem)
        return state

    def create_score_from_elements(
        self,
        elements: list[ParsedElement],
        title: Optional[str] = None,
    ) -> Score:
        """
        Create a new Score from parsed elements, starting from an empty state.

        Args:
            elements: List of parsed elements from CommandParser
            title: Title for the new score

        Returns:
            New single-staff Score
        """
        state = self.apply(manual_entry.create_empty_state(), elements)
        return manual_entry.state_to_score(state, title)

    def _apply_element(
        self,
        state: ManualEntryState,
        elem: ParsedElement,
    ) -> ManualEntryState:
        if isinstance(elem, ParsedNote):
            return manual_entry.add_note(
                state,
                elem.step,
                elem.octave,
                elem.duration.to_note_duration(),
                elem.accidental,
            )
        if isinstance(elem, ParsedRest):
            return manual_entry.add_rest(state, elem.duration.to_note_duration())
        if isinstance(elem, ParsedBarline):
            return manual_entry.next_measure(state)
        if isinstance(elem, ParsedCommand):
            return self._apply_command(state, elem)
        return state

    def _apply_command(
        self,
        state: ManualEntryState,
        parsed: ParsedCommand,
    ) -> ManualEntryState:
        cmd = parsed.command.lower()
        value = parsed.value.strip()

        if cmd == "undo":
            return manual_entry.remove_last_note(state)
        if cmd == "clear":
            return manual_entry.clear_state()
        if cmd == "clef":
            return manual_entry.set_clef(state, self._parse_clef(value))
        if cmd == "time":
            beats, beat_type = self._parse_time_signature(value)
            return manual_entry.set_time_signature(state, beats, beat_type)
        if cmd == "key":
            key_sig = self._parse_key_signature(value)
            return manual_entry.set_key_signature(state, key_sig.fifths, key_sig.mode)

        logger.warning(f"Unknown command '{cmd}'")
        return state

    def _parse_clef(self, value: str) -> Clef:
        """Parse a clef name like 'treble' or 'bass'."""
        clef = Clef.from_name(value)
        if clef.value != value.lower().strip():
            logger.warning(f"Unknown clef '{value}', using treble")
        return clef

    def _parse_time_signature(self, value: str) -> tuple[int, int]:
        """Parse a time signature string like '4/4' or '6/8'."""
        match = CommandParser.TIME_PATTERN.match(value)
        if not match:
            logger.warning(f"Could not parse time signature '{value}', using 4/4")
            return 4, 4
        return max(1, int(match.group(1))), max(1, int(match.group(2)))

    def _parse_key_signature(self, value: str) -> KeySignature:
        """Parse 'G major', 'Bb minor' or a fifths count like '-2 minor'."""
        parts = value.split()
        if not parts:
            return KeySignature()

        mode = Mode.from_name(parts[1]) if len(parts) > 1 else Mode.MAJOR
        tonic = parts[0]

        try:
            fifths = int(tonic)
        except ValueError:
            key_sig = KeySignature.from_tonic(tonic, mode)
            if key_sig is None:
                logger.warning(f"Could not parse key '{value}', using C major")
                return KeySignature()
            return key_sig

        return KeySignature(max(-7, min(7, fifths)), mode)


def execute_commands(text: str, title: Optional[str] = None) -> Score:
    """
    Convenience function to create a Score straight from command text.

    Args:
        text: Command script
        title: Score title

    Returns:
        New Score object
    """
    parser = CommandParser()
    elements = parser.parse(text)
    executor = CommandExecutor()
    return executor.create_score_from_elements(elements, title)
