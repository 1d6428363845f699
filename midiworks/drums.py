"""Step-sequencer drum machine that renders its pads into a loopable track."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import mido

from midiworks.tracks import TimedMidiEvent, Track, note_off, sort_track

DEFAULT_COLUMN_COUNT = 16
DEFAULT_PAD_VELOCITY = 100
DEFAULT_DRUM_CHANNEL = 9
"""Zero-based channel 10, the General MIDI percussion channel."""

DEFAULT_LOOP_DURATION = 15360
"""Four measures of 4/4 at 960 ticks per quarter note."""

DEFAULT_ROWS: tuple[tuple[str, int], ...] = (
    ("Kick", 35),  # acoustic bass drum
    ("Snare", 38),  # acoustic snare
    ("Clap", 39),  # hand clap
    ("Closed HH", 42),  # closed hi-hat
    ("Open HH", 46),  # open hi-hat
    ("Low Tom", 45),  # low tom
    ("Crash", 49),  # crash cymbal 1
    ("Ride", 51),  # ride cymbal 1
)
"""General MIDI drum map entries the machine starts with."""


@dataclass
class DrumPad:
    """One step of one drum row."""

    enabled: bool = False
    velocity: int = DEFAULT_PAD_VELOCITY
    tick: int = 0


@dataclass
class DrumRow:
    """A drum sound and its pads, one per column."""

    name: str
    pitch: int
    pads: list[DrumPad] = field(default_factory=list)


def _resize_pads(pads: list[DrumPad], columns: int) -> None:
    if len(pads) > columns:
        del pads[columns:]
    else:
        pads.extend(DrumPad() for _ in range(columns - len(pads)))


class DrumMachine:
    """A grid of drum pads spread evenly over the loop region."""

    def __init__(self) -> None:
        self.rows: list[DrumRow] = []
        self._column_count = DEFAULT_COLUMN_COUNT
        self._channel = DEFAULT_DRUM_CHANNEL
        self.muted = True
        self._pattern: Track = []
        self._dirty = True
        self._loop_duration = DEFAULT_LOOP_DURATION
        for name, pitch in DEFAULT_ROWS:
            self.add_row(name, pitch)

    @property
    def column_count(self) -> int:
        return self._column_count

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def channel(self) -> int:
        return self._channel

    @property
    def loop_duration(self) -> int:
        """The loop length the pattern was last laid out for."""
        return self._loop_duration

    @property
    def pattern(self) -> Track:
        """The rendered pattern, starting at tick 0; rebuilt when out of date."""
        if self._dirty:
            self._regenerate()
            self._dirty = False
        return self._pattern

    def set_column_count(self, columns: int) -> None:
        """Change the number of steps; existing pads keep their state."""
        if columns < 1:
            raise ValueError("a drum machine needs at least one column")
        self._column_count = columns
        for row in self.rows:
            _resize_pads(row.pads, columns)
        self._dirty = True

    def update_pattern(self, loop_duration: int) -> None:
        """Lay the pattern out over a new loop length if it changed."""
        if loop_duration != self._loop_duration:
            self._loop_duration = loop_duration
            self._dirty = True

    def add_row(self, name: str, pitch: int) -> None:
        self.rows.append(DrumRow(name, pitch, [DrumPad() for _ in range(self._column_count)]))
        self._dirty = True

    def remove_row(self, row_index: int) -> None:
        """Remove a row; an index out of range is ignored."""
        if not 0 <= row_index < len(self.rows):
            return
        del self.rows[row_index]
        self._dirty = True

    def row(self, index: int) -> DrumRow:
        return self.rows[index]

    def pad(self, row_index: int, column_index: int) -> DrumPad:
        return self.rows[row_index].pads[column_index]

    def set_pitch(self, row: int, pitch: int) -> None:
        self.rows[row].pitch = pitch
        self._dirty = True

    def _in_grid(self, row_index: int, column_index: int) -> bool:
        return 0 <= row_index < len(self.rows) and 0 <= column_index < self._column_count

    def toggle_pad(self, row_index: int, column_index: int) -> None:
        """Flip a pad; positions outside the grid are ignored."""
        if not self._in_grid(row_index, column_index):
            return
        pad = self.pad(row_index, column_index)
        pad.enabled = not pad.enabled
        self._dirty = True

    def enable_pad(self, row_index: int, column_index: int) -> None:
        """Switch a pad on; positions outside the grid are ignored."""
        if not self._in_grid(row_index, column_index):
            return
        pad = self.pad(row_index, column_index)
        if not pad.enabled:
            pad.enabled = True
            self._dirty = True

    def set_pad_velocity(self, row_index: int, column_index: int, velocity: int) -> None:
        self.pad(row_index, column_index).velocity = velocity
        self._dirty = True

    def is_pad_enabled(self, row_index: int, column_index: int) -> bool:
        return self.pad(row_index, column_index).enabled

    def clear(self) -> None:
        """Switch every pad off."""
        for row in self.rows:
            for pad in row.pads:
                pad.enabled = False
        self._pattern = []
        self._dirty = True

    def set_channel(self, channel: int) -> None:
        self._channel = channel
        self._dirty = True

    def is_column_on_measure(self, column: int, ticks_per_measure: int) -> bool:
        """Whether the column starts exactly on a measure line."""
        return (column * self.pad_duration(self._loop_duration)) % ticks_per_measure == 0

    def column_at_tick(self, tick: int, loop_start_tick: int) -> Optional[int]:
        """The column nearest to ``tick``, or None outside the grid."""
        if tick < loop_start_tick:
            return None
        ticks_per_column = self.pad_duration(self._loop_duration)
        if ticks_per_column == 0:
            return None
        tick_in_loop = tick - loop_start_tick
        # Nearest column, halves rounding up.
        column = (2 * tick_in_loop + ticks_per_column) // (2 * ticks_per_column)
        if column >= self._column_count:
            return None
        return column

    def pad_duration(self, loop_duration: int) -> int:
        """Ticks per column for a loop of the given length."""
        return loop_duration // self._column_count

    def _regenerate(self) -> None:
        duration = self.pad_duration(self._loop_duration)
        pattern: Track = []
        for row in self.rows:
            for column, pad in enumerate(row.pads[: self._column_count]):
                if not pad.enabled:
                    continue
                tick = column * duration
                on = mido.Message("note_on", note=row.pitch, velocity=pad.velocity, channel=self._channel)
                pattern.append(TimedMidiEvent(on, tick))
                pattern.append(TimedMidiEvent(note_off(row.pitch, self._channel), tick + duration // 2))
        sort_track(pattern)
        self._pattern = pattern