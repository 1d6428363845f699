"""Project persistence: JSON project files and Standard MIDI File import/export."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol, Union

import mido

from midiworks.recording import RecordingSession
from midiworks.soundbank import DEFAULT_VOLUME, TRACK_COLORS, SoundBank
from midiworks.tracks import CHANNEL_COUNT, TimedMidiEvent, TrackSet, is_note_on, note_off

logger = logging.getLogger(__name__)

PROJECT_FORMAT_VERSION = "1.0"
APP_VERSION = "0.3"
TICKS_PER_QUARTER = 960
"""Resolution used for all project data and exported MIDI files."""

PathLike = Union[str, Path]


@dataclass
class BeatSettings:
    """Tempo and time signature of a project."""

    tempo: float = 120.0
    time_signature_numerator: int = 4
    time_signature_denominator: int = 4


class ProjectError(Exception):
    """A project could not be saved, loaded, exported or imported."""

    def __init__(self, title: str, message: str) -> None:
        super().__init__(f"{title}: {message}")
        self.title = title
        self.message = message


class Transport(Protocol):
    """The parts of a playback transport a project reads and resets."""

    beat_settings: BeatSettings
    current_tick: int

    def stop(self) -> None: ...

    def reset(self) -> None: ...


@dataclass
class _StandaloneTransport:
    beat_settings: BeatSettings = field(default_factory=BeatSettings)
    current_tick: int = 0
    playing: bool = False

    def stop(self) -> None:
        self.playing = False

    def reset(self) -> None:
        self.current_tick = 0


def _midi_data(message: mido.Message) -> list[int]:
    data = list(message.bytes())[:3]
    return data + [0] * (3 - len(data))


def _message_from_data(data: Iterable[Any]) -> mido.Message:
    values = [_int(value) for value in data]
    if len(values) < 3:
        raise IndexError("midiData needs three bytes")
    length = 2 if values[0] & 0xF0 in (0xC0, 0xD0) else 3
    return mido.Message.from_bytes(values[:length])


def _int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {value!r}")
    return value


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"expected a number, got {value!r}")
    return float(value)


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a boolean, got {value!r}")
    return value


def _string(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {value!r}")
    return value


def _absolute(track: mido.MidiTrack) -> Iterable[tuple[int, mido.Message]]:
    tick = 0
    for message in track:
        tick += message.time
        yield tick, message


def _first_tempo(midi: mido.MidiFile) -> float:
    tempo = 120.0
    for track in midi.tracks:
        found = next((m for m in track if m.is_meta and m.type == "set_tempo"), None)
        if found is not None:
            tempo = mido.tempo2bpm(found.tempo)
        if tempo != 120.0:
            break
    return tempo


def _first_time_signature(midi: mido.MidiFile) -> tuple[int, int]:
    numerator, denominator = 4, 4
    for track in midi.tracks:
        found = next((m for m in track if m.is_meta and m.type == "time_signature"), None)
        if found is not None:
            numerator, denominator = found.numerator, found.denominator
        if numerator != 4:
            break
    return numerator, denominator


class ProjectManager:
    """Saves, loads, clears, exports and imports a project and tracks unsaved changes."""

    def __init__(
        self,
        transport: Optional[Transport] = None,
        sound_bank: Optional[SoundBank] = None,
        track_set: Optional[TrackSet] = None,
        recording_session: Optional[RecordingSession] = None,
        *,
        on_dirty_change: Optional[Callable[[bool], None]] = None,
        on_clear_undo_history: Optional[Callable[[], None]] = None,
    ) -> None:
        self.transport: Transport = transport if transport is not None else _StandaloneTransport()
        self.sound_bank = sound_bank if sound_bank is not None else SoundBank()
        self.track_set = track_set if track_set is not None else TrackSet()
        self.recording_session = recording_session if recording_session is not None else RecordingSession()
        self.on_dirty_change = on_dirty_change
        self.on_clear_undo_history = on_clear_undo_history
        self._dirty = False
        self._current_path = ""

    @property
    def is_dirty(self) -> bool:
        """Whether the project changed since it was last saved or loaded."""
        return self._dirty

    @property
    def current_path(self) -> str:
        """Path of the current project file, or an empty string."""
        return self._current_path

    def mark_dirty(self) -> None:
        if not self._dirty:
            self._dirty = True
            if self.on_dirty_change:
                self.on_dirty_change(True)

    def mark_clean(self) -> None:
        if self._dirty:
            self._dirty = False
            if self.on_dirty_change:
                self.on_dirty_change(False)

    def _clear_undo_history(self) -> None:
        if self.on_clear_undo_history:
            self.on_clear_undo_history()

    def _to_json(self) -> dict[str, Any]:
        beat = self.transport.beat_settings
        return {
            "version": PROJECT_FORMAT_VERSION,
            "appVersion": APP_VERSION,
            "transport": {
                "tempo": beat.tempo,
                "timeSignature": [beat.time_signature_numerator, beat.time_signature_denominator],
                "currentTick": self.transport.current_tick,
            },
            "channels": [
                {
                    "channelNumber": ch.channel_number,
                    "programNumber": ch.program_number,
                    "volume": ch.volume,
                    "mute": ch.mute,
                    "solo": ch.solo,
                    "record": ch.record,
                    "minimized": ch.minimized,
                    "customName": ch.custom_name,
                    "customColor": dict(zip("rgb", ch.custom_color)),
                }
                for ch in self.sound_bank.channels
            ],
            "tracks": [
                {
                    "channel": index,
                    "events": [
                        {"tick": event.tick, "midiData": _midi_data(event.message)} for event in track
                    ],
                }
                for index, track in enumerate(self.track_set)
            ],
        }

    def save_project(self, path: PathLike) -> None:
        """Write the project as indented JSON and mark it clean."""
        try:
            text = json.dumps(self._to_json(), indent=4)
        except Exception as exc:
            raise ProjectError("Save Failed", f"Error saving project: {exc}") from exc
        try:
            with open(path, "w", encoding="utf-8") as file:
                file.write(text)
        except OSError as exc:
            raise ProjectError("Save Failed", f"Could not open file for writing: {path}") from exc
        self._current_path = str(path)
        self.mark_clean()

    def load_project(self, path: PathLike) -> None:
        """Replace the project with the one in ``path`` and mark it clean."""
        try:
            with open(path, encoding="utf-8") as file:
                text = file.read()
        except OSError as exc:
            raise ProjectError("Load Failed", f"Could not open file: {path}") from exc
        try:
            self._apply_json(json.loads(text))
        except json.JSONDecodeError as exc:
            raise ProjectError(
                "Load Failed", f"Project file is corrupted or not valid JSON: {exc}"
            ) from exc
        except (KeyError, IndexError) as exc:
            raise ProjectError("Load Failed", f"Project file is missing required data: {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise ProjectError("Load Failed", f"Project file has invalid data format: {exc}") from exc

        self._clear_undo_history()
        self._current_path = str(path)
        self.mark_clean()

    def _apply_json(self, project: dict[str, Any]) -> None:
        transport = project["transport"]
        signature = transport["timeSignature"]
        self.transport.beat_settings = BeatSettings(
            tempo=_number(transport["tempo"]),
            time_signature_numerator=_int(signature[0]),
            time_signature_denominator=_int(signature[1]),
        )
        if "currentTick" in transport:
            self.transport.reset()

        for index, data in enumerate(project["channels"]):
            ch = self.sound_bank.channel(index)
            ch.program_number = _int(data["programNumber"])
            ch.volume = _int(data["volume"])
            ch.mute = _flag(data["mute"])
            ch.solo = _flag(data["solo"])
            ch.record = _flag(data["record"])
            if "minimized" in data:
                ch.minimized = _flag(data["minimized"])
            if "customName" in data:
                ch.custom_name = _string(data["customName"])
            if "customColor" in data:
                colour = data["customColor"]
                ch.custom_color = (_int(colour["r"]), _int(colour["g"]), _int(colour["b"]))
        self.sound_bank.apply_channel_settings()

        for data in project["tracks"]:
            track = self.track_set.track(_int(data["channel"]))
            track.clear()
            track.extend(
                TimedMidiEvent(_message_from_data(event["midiData"]), _int(event["tick"]))
                for event in data["events"]
            )

    def clear_project(self) -> None:
        """Reset transport, tracks, recording buffer and channels to defaults."""
        self.transport.stop()
        self.transport.beat_settings = BeatSettings()
        self.transport.reset()

        for track in self.track_set:
            track.clear()
        self.recording_session.clear()

        for index, ch in enumerate(self.sound_bank.channels):
            ch.program_number = 0
            ch.volume = DEFAULT_VOLUME
            ch.mute = False
            ch.solo = False
            ch.record = False
            ch.minimized = False
            ch.custom_name = ""
            ch.custom_color = TRACK_COLORS[index]
        self.sound_bank.apply_channel_settings()
        self.sound_bank.silence_all_channels()

        self._clear_undo_history()
        self._current_path = ""
        self.mark_clean()

    def export_midi(self, path: PathLike) -> None:
        """Write the tracks as a Standard MIDI File at 960 ticks per quarter."""
        try:
            beat = self.transport.beat_settings
            midi = mido.MidiFile(ticks_per_beat=TICKS_PER_QUARTER)
            midi.tracks.append(
                mido.MidiTrack(
                    [
                        mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(beat.tempo), time=0),
                        mido.MetaMessage(
                            "time_signature",
                            numerator=beat.time_signature_numerator,
                            denominator=beat.time_signature_denominator,
                            time=0,
                        ),
                    ]
                )
            )
            for index, track in enumerate(self.track_set):
                if not track:
                    continue
                program = self.sound_bank.channel(index).program_number
                timed = [(0, mido.Message("program_change", program=program, channel=index))]
                timed.extend((event.tick, event.message) for event in track)
                timed.sort(key=lambda item: item[0])
                out = mido.MidiTrack()
                previous = 0
                for tick, message in timed:
                    out.append(message.copy(time=tick - previous))
                    previous = tick
                midi.tracks.append(out)
            midi.save(str(path))
        except Exception as exc:
            raise ProjectError("Export Failed", f"Error exporting MIDI file: {exc}") from exc

    def import_midi(self, path: PathLike) -> None:
        """Replace the tracks with the notes of a Standard MIDI File and mark dirty."""
        try:
            midi = mido.MidiFile(str(path))
        except Exception as exc:
            raise ProjectError("Import Failed", f"Could not read MIDI file: {path}") from exc
        try:
            self._import(midi, path)
        except Exception as exc:
            raise ProjectError("Import Failed", f"Error importing MIDI file: {exc}") from exc
        self.mark_dirty()

    def _import(self, midi: mido.MidiFile, path: PathLike) -> None:
        conversion = TICKS_PER_QUARTER / midi.ticks_per_beat
        logger.debug(
            "importing %s: %d ticks per quarter, %d tracks, conversion %sx",
            path,
            midi.ticks_per_beat,
            len(midi.tracks),
            conversion,
        )

        for track in self.track_set:
            track.clear()

        numerator, denominator = _first_time_signature(midi)
        self.transport.beat_settings = BeatSettings(
            tempo=_first_tempo(midi),
            time_signature_numerator=numerator,
            time_signature_denominator=denominator,
        )

        for midi_track in midi.tracks:
            for tick, message in _absolute(midi_track):
                if message.is_meta:
                    continue
                channel = getattr(message, "channel", None)
                if channel is None or channel >= CHANNEL_COUNT:
                    continue
                if message.type == "program_change":
                    self.sound_bank.channel(channel).program_number = message.program
                    continue
                if message.type not in ("note_on", "note_off"):
                    continue
                imported = message.copy(time=0)
                if is_note_on(imported) and imported.velocity == 0:
                    imported = note_off(imported.note, channel)
                self.track_set.track(channel).append(TimedMidiEvent(imported, int(tick * conversion)))

        self.sound_bank.apply_channel_settings()