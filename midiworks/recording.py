"""Recording buffer with held-note tracking for loop recording."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

import mido

from midiworks.tracks import (
    Track,
    TimedMidiEvent,
    _first_index_at_or_after,
    _play_from,
    is_note_off,
    is_note_on,
    note_off,
)


class RecordingSession:
    """Collects events while recording and tracks keys that are still held."""

    def __init__(self) -> None:
        self.buffer: Track = []
        self._position: Optional[int] = None
        self._active_notes: list[TimedMidiEvent] = []

    @property
    def active_notes(self) -> tuple[TimedMidiEvent, ...]:
        """Note Ons whose keys have not been released yet."""
        return tuple(self._active_notes)

    def is_empty(self) -> bool:
        return not self.buffer

    def clear(self) -> None:
        """Empty the buffer and held notes and reset loop playback."""
        self.buffer.clear()
        self._position = None
        self._active_notes.clear()

    def record_event(self, message: mido.Message, current_tick: int) -> None:
        """Append a message to the buffer and update the held notes."""
        event = TimedMidiEvent(message, current_tick)
        self.buffer.append(event)
        velocity = getattr(message, "velocity", 0)

        if is_note_on(message) and velocity > 0:
            self._active_notes.append(replace(event))
        elif is_note_off(message) or (is_note_on(message) and velocity == 0):
            self._stop_note(message.channel, message.note)

    def wrap_active_notes_at_loop(self, end_tick: int, loop_start_tick: int) -> None:
        """End held notes at ``end_tick`` and restart them at the loop start."""
        for note in self._active_notes:
            self.buffer.append(TimedMidiEvent(note_off(note.message.note, note.message.channel), end_tick))
            self.buffer.append(TimedMidiEvent(note.message.copy(), loop_start_tick))
            note.tick = loop_start_tick

    def close_all_active_notes(self, end_tick: int) -> None:
        """End every held note at ``end_tick`` and forget them."""
        for note in self._active_notes:
            self.buffer.append(TimedMidiEvent(note_off(note.message.note, note.message.channel), end_tick))
        self._active_notes.clear()

    def has_active_notes(self) -> bool:
        return bool(self._active_notes)

    def reset_loop_playback(self, loop_start_tick: int) -> None:
        """Move the playback cursor to the first buffered event in the loop."""
        if not self.buffer:
            return
        self._position = _first_index_at_or_after(self.buffer, loop_start_tick)

    def loop_playback_messages(self, current_tick: int) -> list[mido.Message]:
        """Buffered messages due at or before ``current_tick``."""
        messages, self._position = _play_from(self.buffer, self._position, current_tick)
        return messages

    def _stop_note(self, channel: int, pitch: int) -> None:
        self._active_notes = [
            note
            for note in self._active_notes
            if not (note.message.note == pitch and note.message.channel == channel)
        ]