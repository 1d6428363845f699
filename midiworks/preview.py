"""Temporary note state shown while the user adds, drags or resizes notes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from midiworks.soundbank import SoundBank
from midiworks.tracks import NOTE_SEPARATION_TICKS, NoteLocation, TrackSet


@dataclass
class NoteAddPreview:
    """A note being placed with the mouse."""

    is_active: bool = False
    pitch: int = 0
    tick: int = 0


@dataclass
class NoteEditPreview:
    """A single note being moved or resized."""

    is_active: bool = False
    original_note: Optional[NoteLocation] = None
    preview_start_tick: int = 0
    preview_end_tick: int = 0
    preview_pitch: int = 0


@dataclass
class MultiNoteEditPreview:
    """Several notes being moved together."""

    is_active: bool = False
    original_notes: list[NoteLocation] = field(default_factory=list)
    tick_delta: int = 0
    pitch_delta: int = 0


class PreviewManager:
    """Holds preview notes and plays audio feedback for new notes.

    Collision checks for edits are done by the caller; only note additions
    are checked here.
    """

    def __init__(self, track_set: TrackSet, sound_bank: SoundBank) -> None:
        self._track_set = track_set
        self._sound_bank = sound_bank
        self.note_add = NoteAddPreview()
        self.note_edit = NoteEditPreview()
        self.multi_note_edit = MultiNoteEditPreview()

    @property
    def has_note_add_preview(self) -> bool:
        return self.note_add.is_active

    @property
    def has_note_edit_preview(self) -> bool:
        return self.note_edit.is_active

    @property
    def has_multi_note_edit_preview(self) -> bool:
        return self.multi_note_edit.is_active

    def set_note_add_preview(self, pitch: int, tick: int, snapped_tick: int, duration: int) -> bool:
        """Update the add preview unless it collides in a record-enabled track.

        Returns whether the preview was updated.
        """
        end_tick = snapped_tick + duration - NOTE_SEPARATION_TICKS
        for ch in self._sound_bank.record_enabled_channels():
            if self._track_set.find_notes_in_region(snapped_tick, end_tick, pitch, pitch, ch.channel_number):
                return False

        if not self.note_add.is_active or pitch != self.note_add.pitch:
            if self.note_add.is_active:
                self._sound_bank.stop_preview_note()
            self._sound_bank.play_preview_note(pitch)

        self.note_add.is_active = True
        self.note_add.pitch = pitch
        self.note_add.tick = tick
        return True

    def clear_note_add_preview(self) -> None:
        if self.note_add.is_active:
            self._sound_bank.stop_preview_note()
            self.note_add.is_active = False

    def set_note_move_preview(self, note: NoteLocation, new_start_tick: int, new_pitch: int) -> None:
        self.note_edit = NoteEditPreview(
            is_active=True,
            original_note=note,
            preview_start_tick=new_start_tick,
            preview_end_tick=new_start_tick + (note.end_tick - note.start_tick),
            preview_pitch=new_pitch,
        )

    def set_note_resize_preview(self, note: NoteLocation, new_end_tick: int) -> None:
        self.note_edit = NoteEditPreview(
            is_active=True,
            original_note=note,
            preview_start_tick=note.start_tick,
            preview_end_tick=new_end_tick,
            preview_pitch=note.pitch,
        )

    def set_multiple_notes_move_preview(
        self, notes: Sequence[NoteLocation], tick_delta: int, pitch_delta: int
    ) -> None:
        self.multi_note_edit = MultiNoteEditPreview(
            is_active=True,
            original_notes=list(notes),
            tick_delta=tick_delta,
            pitch_delta=pitch_delta,
        )

    def clear_note_edit_preview(self) -> None:
        """Clear both the single and the multi note edit previews."""
        self.note_edit.is_active = False
        self.multi_note_edit.is_active = False