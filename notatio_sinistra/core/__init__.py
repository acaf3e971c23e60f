"""
Core module for Notatio Sinistra.

Contains the notation model, the Sinistra transform and the manual
entry state machine.
"""

from notatio_sinistra.core.notation import (
    Accidental,
    BeamType,
    Chord,
    Clef,
    KeySignature,
    Measure,
    MeasureContext,
    MeasureElement,
    Mode,
    Note,
    NoteDuration,
    Pitch,
    Score,
    SinistraScore,
    Staff,
    Step,
    TimeSignature,
    iter_measure_context,
    iter_notes,
    validate_score,
)
from notatio_sinistra.core.sinistra import (
    SystemLayout,
    calculate_system_layout,
    get_measure_at_position,
    is_sinistra_score,
    restore_from_sinistra,
    transform_to_sinistra,
)
from notatio_sinistra.core.manual_entry import (
    ManualEntryState,
    add_note,
    add_rest,
    clear_state,
    create_empty_state,
    next_measure,
    remove_last_note,
    set_clef,
    set_key_signature,
    set_time_signature,
    state_to_score,
)
from notatio_sinistra.core.command_parser import (
    CommandParseError,
    CommandParser,
    format_help,
)
from notatio_sinistra.core.command_executor import (
    CommandExecutor,
    execute_commands,
)

__all__ = [
    "Accidental",
    "BeamType",
    "Chord",
    "Clef",
    "KeySignature",
    "Measure",
    "MeasureContext",
    "MeasureElement",
    "Mode",
    "Note",
    "NoteDuration",
    "Pitch",
    "Score",
    "SinistraScore",
    "Staff",
    "Step",
    "TimeSignature",
    "iter_measure_context",
    "iter_notes",
    "validate_score",
    "SystemLayout",
    "calculate_system_layout",
    "get_measure_at_position",
    "is_sinistra_score",
    "restore_from_sinistra",
    "transform_to_sinistra",
    "ManualEntryState",
    "add_note",
    "add_rest",
    "clear_state",
    "create_empty_state",
    "next_measure",
    "remove_last_note",
    "set_clef",
    "set_key_signature",
    "set_time_signature",
    "state_to_score",
    "CommandParseError",
    "CommandParser",
    "format_help",
    "CommandExecutor",
    "execute_commands",
]
