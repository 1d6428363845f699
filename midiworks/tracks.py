"""Per-channel MIDI track storage, note extraction and track helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

import mido

CHANNEL_COUNT = 15
"""Number of user tracks; channel 16 is reserved for the metronome."""

NOTE_SEPARATION_TICKS = 1
"""Gap kept between a note's end and the next note of the same pitch."""


def round_to_grid(tick: int, grid_size: int) -> int:
    """Round ``tick`` to the nearest multiple of ``grid_size`` (halves round up)."""
    if grid_size <= 0:
        raise ValueError("grid_size must be positive")
    return ((tick + grid_size // 2) // grid_size) * grid_size


def is_note_on(message: mido.Message) -> bool:
    return message.type == "note_on"


def is_note_off(message: mido.Message) -> bool:
    return message.type == "note_off"


def note_off(pitch: int, channel: int) -> mido.Message:
    """Build a Note Off message with zero release velocity."""
    return mido.Message("note_off", note=pitch, velocity=0, channel=channel)


@dataclass
class TimedMidiEvent:
    """A MIDI message placed at an absolute tick."""

    message: mido.Message
    tick: int = 0


Track = List[TimedMidiEvent]


@dataclass(frozen=True)
class NoteLocation:
    """A paired Note On / Note Off inside a track."""

    track_index: int
    note_on_index: int
    note_off_index: int
    start_tick: int
    end_tick: int
    pitch: int
    velocity: int


def notes_from_track(track: Track, track_index: int = 0) -> list[NoteLocation]:
    """Pair every Note On with the first later Note Off of the same pitch."""
    result: list[NoteLocation] = []
    for i, on_event in enumerate(track):
        on = on_event.message
        if not is_note_on(on):
            continue
        for j in range(i + 1, len(track)):
            off_event = track[j]
            off = off_event.message
            if not is_note_off(off) or off.note != on.note:
                continue
            result.append(
                NoteLocation(
                    track_index=track_index,
                    note_on_index=i,
                    note_off_index=j,
                    start_tick=on_event.tick,
                    end_tick=off_event.tick,
                    pitch=on.note,
                    velocity=on.velocity,
                )
            )
            break
    return result


def sort_track(track: Track) -> None:
    """Sort a track in place by tick."""
    track.sort(key=lambda event: event.tick)


def separate_overlapping_notes(track: Track) -> None:
    """Where two Note Ons of one pitch and channel follow each other, end the
    first note just before the second starts."""
    if len(track) < 2:
        return
    sort_track(track)
    moved: set[int] = set()

    for i, event_i in enumerate(track):
        first = event_i.message
        if not is_note_on(first):
            continue
        for j in range(i + 1, len(track)):
            second = track[j].message
            if not hasattr(second, "note") or not hasattr(second, "channel"):
                continue
            if second.note != first.note or second.channel != first.channel:
                continue
            if is_note_on(second):
                for k in range(j + 1, len(track)):
                    candidate = track[k].message
                    if is_note_off(candidate) and candidate.note == first.note and k not in moved:
                        track[k].tick = track[j].tick - NOTE_SEPARATION_TICKS
                        moved.add(k)
                        break
            break

    sort_track(track)


def quantize_track(track: Track, grid_size: int) -> None:
    """Duration-aware quantization of every note in the track.

    Notes shorter than one grid step are snapped at the start and stretched
    to one step; longer notes have start and end snapped independently.
    """
    for note in notes_from_track(track):
        duration = note.end_tick - note.start_tick
        start = round_to_grid(note.start_tick, grid_size)
        track[note.note_on_index].tick = start
        if duration < grid_size:
            track[note.note_off_index].tick = start + grid_size - NOTE_SEPARATION_TICKS
        else:
            track[note.note_off_index].tick = (
                round_to_grid(note.end_tick, grid_size) - NOTE_SEPARATION_TICKS
            )
    separate_overlapping_notes(track)
    sort_track(track)


def _play_from(track: Track, position: Optional[int], current_tick: int) -> tuple[list[mido.Message], Optional[int]]:
    messages: list[mido.Message] = []
    while position is not None and position < len(track) and track[position].tick <= current_tick:
        messages.append(track[position].message)
        position += 1
        if position >= len(track):
            position = None
    return messages, position


def _first_index_at_or_after(track: Track, tick: int) -> Optional[int]:
    return next((i for i, event in enumerate(track) if event.tick >= tick), None)


class TrackSet:
    """MIDI events for every user channel, with a playback cursor per track."""

    def __init__(self) -> None:
        self._tracks: list[Track] = [[] for _ in range(CHANNEL_COUNT)]
        self._positions: list[Optional[int]] = [None] * CHANNEL_COUNT

    def __iter__(self) -> Iterator[Track]:
        return iter(self._tracks)

    def track(self, channel: int) -> Track:
        """The mutable event list for one channel."""
        return self._tracks[channel]

    def is_track_empty(self, channel: int) -> bool:
        return not self._tracks[channel]

    def is_empty(self) -> bool:
        """True when no track holds a complete note."""
        return not self.all_notes()

    def play_back(self, current_tick: int) -> list[mido.Message]:
        """Messages due at or before ``current_tick``, advancing each cursor."""
        scheduled: list[mido.Message] = []
        for index, track in enumerate(self._tracks):
            messages, self._positions[index] = _play_from(track, self._positions[index], current_tick)
            scheduled.extend(messages)
        return scheduled

    def find_start(self, start_tick: int) -> None:
        """Place every cursor on the first event at or after ``start_tick``."""
        self._positions = [_first_index_at_or_after(track, start_tick) for track in self._tracks]

    def find_note_at(self, tick: int, pitch: int) -> Optional[NoteLocation]:
        """The first note of ``pitch`` sounding at ``tick``, if any."""
        return next(
            (
                note
                for note in self.all_notes()
                if note.pitch == pitch and note.start_tick <= tick <= note.end_tick
            ),
            None,
        )

    def find_note_in_track(
        self, track_index: int, start_tick: int, end_tick: int, pitch: int
    ) -> Optional[NoteLocation]:
        """The note in one track with exactly these bounds and pitch, if any."""
        return next(
            (
                note
                for note in notes_from_track(self._tracks[track_index], track_index)
                if note.pitch == pitch and note.start_tick == start_tick and note.end_tick == end_tick
            ),
            None,
        )

    def find_notes_in_region(
        self, min_tick: int, max_tick: int, min_pitch: int, max_pitch: int, track_index: int = -1
    ) -> list[NoteLocation]:
        """Notes overlapping the region; a track index outside 0..14 searches all tracks."""
        if 0 <= track_index < CHANNEL_COUNT:
            candidates = notes_from_track(self._tracks[track_index], track_index)
        else:
            candidates = self.all_notes()
        return [
            note
            for note in candidates
            if min_pitch <= note.pitch <= max_pitch
            and note.start_tick <= max_tick
            and note.end_tick >= min_tick
        ]

    def all_notes(self) -> list[NoteLocation]:
        return [
            note
            for index, track in enumerate(self._tracks)
            for note in notes_from_track(track, index)
        ]

    def all_events(self) -> list[TimedMidiEvent]:
        return [event for track in self._tracks for event in track]

    def finalize_recording(self, buffer: Track) -> None:
        """Move recorded events into their channels' tracks and empty the buffer."""
        for event in buffer:
            self._tracks[event.message.channel].append(event)
        for track in self._tracks:
            sort_track(track)
        buffer.clear()

    def extend(self, events: Iterable[TimedMidiEvent]) -> None:
        """Add events to their channels' tracks and keep each track sorted."""
        self.finalize_recording(list(events))