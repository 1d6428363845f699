"""MIDI output routing and per-channel sound settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

import mido

from midiworks.tracks import CHANNEL_COUNT, note_off

DEFAULT_VOLUME = 100
DEFAULT_VELOCITY = 100
MAX_MIDI_VALUE = 127
METRONOME_CHANNEL = 15
"""Zero-based channel 16, kept for the metronome."""

METRONOME_PROGRAM = 115
"""General MIDI woodblock."""

VOLUME_CONTROL = 7
ALL_NOTES_OFF_CONTROL = 123
PERCUSSION_CHANNEL = 9

Colour = tuple[int, int, int]

TRACK_COLORS: tuple[Colour, ...] = (
    (255, 100, 100),  # red
    (100, 255, 100),  # green
    (100, 100, 255),  # blue
    (255, 255, 100),  # yellow
    (255, 100, 255),  # magenta
    (100, 255, 255),  # cyan
    (255, 150, 100),  # orange
    (150, 100, 255),  # purple
    (255, 200, 100),  # light orange
    (100, 255, 200),  # mint
    (200, 100, 255),  # violet
    (255, 100, 200),  # pink
    (200, 255, 100),  # lime
    (100, 200, 255),  # sky blue
    (255, 255, 200),  # light yellow
)
"""One default colour per user track."""


class MidiOutput(Protocol):
    """Anything that accepts MIDI messages, such as a mido output port."""

    def send(self, message: mido.Message) -> None: ...


@dataclass
class MidiChannel:
    """Settings of one user channel."""

    channel_number: int = 0
    program_number: int = 0
    volume: int = DEFAULT_VOLUME
    mute: bool = False
    solo: bool = False
    record: bool = False
    minimized: bool = False
    custom_name: str = ""
    custom_color: Colour = field(default=(0, 0, 0))


def _default_channels() -> list[MidiChannel]:
    channels = [
        MidiChannel(channel_number=c, program_number=c * 8, custom_color=TRACK_COLORS[c])
        for c in range(CHANNEL_COUNT)
    ]
    drums = channels[PERCUSSION_CHANNEL]
    drums.program_number = 0
    drums.custom_name = "Ch 10 - Percussion"
    return channels


class SoundBank:
    """Channel state and the MIDI output that plays it."""

    def __init__(self, output: Optional[MidiOutput] = None) -> None:
        self.channels: list[MidiChannel] = _default_channels()
        self.output: Optional[MidiOutput] = output
        self.preview_velocity: int = DEFAULT_VELOCITY
        self.is_previewing_note: bool = False
        self.preview_pitch: int = 0
        self._preview_channels: list[int] = []
        self.apply_channel_settings()

    def set_output(self, device: Optional[MidiOutput]) -> None:
        """Switch to another output and send it the channel settings."""
        self.output = device
        self.apply_channel_settings()

    def _send(self, message: mido.Message) -> None:
        if self.output is not None:
            self.output.send(message)

    def apply_channel_settings(self) -> None:
        """Send program and volume of every channel, and the metronome sound."""
        if self.output is None:
            return
        for ch in self.channels:
            self._send(mido.Message("program_change", program=ch.program_number, channel=ch.channel_number))
            self._send(
                mido.Message(
                    "control_change", control=VOLUME_CONTROL, value=ch.volume, channel=ch.channel_number
                )
            )
        self._send(mido.Message("program_change", program=METRONOME_PROGRAM, channel=METRONOME_CHANNEL))

    def channel(self, number: int) -> MidiChannel:
        return self.channels[number]

    def channel_color(self, number: int) -> Colour:
        return self.channels[number].custom_color

    def solos_found(self) -> bool:
        return any(ch.solo for ch in self.channels)

    def record_enabled_channels(self) -> list[MidiChannel]:
        return [ch for ch in self.channels if ch.record]

    def solo_channels(self) -> list[MidiChannel]:
        return [ch for ch in self.channels if ch.solo]

    def should_channel_play(self, channel: MidiChannel, check_record: bool = False) -> bool:
        """Solo overrides everything; otherwise unmuted (and, if asked, record-enabled)."""
        if self.solos_found():
            return channel.solo
        if check_record:
            return channel.record and not channel.mute
        return not channel.mute

    def play_messages(self, messages: Iterable[mido.Message]) -> None:
        """Send the messages whose channel is allowed to play."""
        for message in messages:
            number = getattr(message, "channel", None)
            if number is None or not 0 <= number < CHANNEL_COUNT:
                continue
            if self.should_channel_play(self.channels[number]):
                self._send(message)

    def play_note(self, pitch: int, velocity: int, channel: int) -> None:
        self._send(mido.Message("note_on", note=pitch, velocity=velocity, channel=channel))

    def stop_note(self, pitch: int, channel: int) -> None:
        self._send(note_off(pitch, channel))

    def silence_all_channels(self) -> None:
        """Send All Notes Off on every user channel."""
        for c in range(CHANNEL_COUNT):
            self._send(mido.Message("control_change", control=ALL_NOTES_OFF_CONTROL, value=0, channel=c))

    def play_metronome_click(self, is_downbeat: bool) -> None:
        """Accented high E on the downbeat, softer high C otherwise."""
        note = 76 if is_downbeat else 72
        velocity = MAX_MIDI_VALUE if is_downbeat else 90
        self._send(mido.Message("note_on", note=note, velocity=velocity, channel=METRONOME_CHANNEL))

    def play_preview_note(self, pitch: int) -> None:
        """Sound ``pitch`` on every record-enabled channel."""
        self._preview_channels = []
        for ch in self.record_enabled_channels():
            self.play_note(pitch, self.preview_velocity, ch.channel_number)
            self._preview_channels.append(ch.channel_number)
        self.is_previewing_note = True
        self.preview_pitch = pitch

    def stop_preview_note(self) -> None:
        """Release the preview note on the channels it was played on."""
        if not self.is_previewing_note:
            return
        for number in self._preview_channels:
            self.stop_note(self.preview_pitch, number)
        self.is_previewing_note = False
        self._preview_channels = []