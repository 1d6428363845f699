import json

import mido
import pytest

from midiworks.project import BeatSettings, ProjectError, ProjectManager
from midiworks.soundbank import TRACK_COLORS
from midiworks.tracks import TimedMidiEvent


def _note(pitch, velocity, channel):
    return mido.Message("note_on", note=pitch, velocity=velocity, channel=channel)


def _off(pitch, channel):
    return mido.Message("note_off", note=pitch, velocity=0, channel=channel)


@pytest.fixture
def manager():
    pm = ProjectManager()
    track = pm.track_set.track(2)
    track.append(TimedMidiEvent(_note(60, 100, 2), 0))
    track.append(TimedMidiEvent(_off(60, 2), 959))
    track.append(TimedMidiEvent(_note(64, 80, 2), 960))
    track.append(TimedMidiEvent(_off(64, 2), 1919))
    return pm


def test_saved_json_layout(manager, tmp_path):
    path = tmp_path / "song.mwp"
    manager.save_project(path)
    data = json.loads(path.read_text())
    assert data["version"] == "1.0"
    assert data["appVersion"] == "0.3"
    assert len(data["channels"]) == 15
    assert len(data["tracks"]) == 15
    assert data["tracks"][2]["events"][0] == {"tick": 0, "midiData": [0x92, 60, 100]}
    assert data["channels"][9]["customName"] == "Ch 10 - Percussion"


def test_save_load_round_trip(manager, tmp_path):
    manager.transport.beat_settings = BeatSettings(tempo=100.0, time_signature_numerator=3)
    ch = manager.sound_bank.channel(4)
    ch.program_number = 25
    ch.mute = True
    ch.custom_name = "Guitar"
    ch.custom_color = (1, 2, 3)
    path = tmp_path / "song.mwp"
    manager.save_project(path)

    loaded = ProjectManager()
    loaded.load_project(path)
    assert loaded.transport.beat_settings == manager.transport.beat_settings
    assert loaded.sound_bank.channel(4) == manager.sound_bank.channel(4)
    assert loaded.track_set.all_notes() == manager.track_set.all_notes()
    assert loaded.current_path == str(path)
    assert not loaded.is_dirty


def test_program_change_event_round_trip(tmp_path):
    pm = ProjectManager()
    pm.track_set.track(1).append(TimedMidiEvent(mido.Message("program_change", program=5, channel=1), 10))
    path = tmp_path / "p.mwp"
    pm.save_project(path)
    other = ProjectManager()
    other.load_project(path)
    assert other.track_set.track(1) == pm.track_set.track(1)


def test_save_marks_clean(manager, tmp_path):
    events = []
    manager.on_dirty_change = events.append
    manager.mark_dirty()
    manager.save_project(tmp_path / "a.mwp")
    assert events == [True, False]
    assert manager.current_path == str(tmp_path / "a.mwp")


def test_mark_dirty_notifies_only_on_change():
    events = []
    pm = ProjectManager(on_dirty_change=events.append)
    pm.mark_dirty()
    pm.mark_dirty()
    pm.mark_clean()
    pm.mark_clean()
    assert events == [True, False]


def test_load_resets_tick_and_clears_undo(manager, tmp_path):
    calls = []
    manager.transport.current_tick = 500
    path = tmp_path / "a.mwp"
    manager.save_project(path)
    manager.on_clear_undo_history = lambda: calls.append(1)
    manager.load_project(path)
    assert manager.transport.current_tick == 0
    assert calls == [1]


def test_load_missing_file(tmp_path):
    with pytest.raises(ProjectError) as info:
        ProjectManager().load_project(tmp_path / "missing.mwp")
    assert info.value.title == "Load Failed"


def test_load_invalid_json(tmp_path):
    path = tmp_path / "bad.mwp"
    path.write_text("{not json")
    with pytest.raises(ProjectError) as info:
        ProjectManager().load_project(path)
    assert "not valid JSON" in info.value.message


def test_load_missing_data(tmp_path):
    path = tmp_path / "bad.mwp"
    path.write_text(json.dumps({"version": "1.0"}))
    with pytest.raises(ProjectError) as info:
        ProjectManager().load_project(path)
    assert "missing required data" in info.value.message


def test_load_wrong_type(manager, tmp_path):
    path = tmp_path / "a.mwp"
    manager.save_project(path)
    data = json.loads(path.read_text())
    data["channels"][0]["mute"] = "yes"
    path.write_text(json.dumps(data))
    with pytest.raises(ProjectError) as info:
        ProjectManager().load_project(path)
    assert "invalid data format" in info.value.message


def test_clear_project(manager, tmp_path):
    calls = []
    manager.on_clear_undo_history = lambda: calls.append(1)
    manager.save_project(tmp_path / "a.mwp")
    manager.sound_bank.channel(3).solo = True
    manager.transport.beat_settings = BeatSettings(tempo=90.0)
    manager.clear_project()
    assert manager.track_set.all_events() == []
    assert manager.transport.beat_settings == BeatSettings()
    assert [ch.custom_color for ch in manager.sound_bank.channels] == list(TRACK_COLORS)
    assert not any(ch.solo for ch in manager.sound_bank.channels)
    assert manager.sound_bank.channel(9).custom_name == ""
    assert manager.current_path == ""
    assert calls == [1]


def test_export_import_round_trip(manager, tmp_path):
    manager.transport.beat_settings = BeatSettings(tempo=100.0, time_signature_numerator=3)
    manager.sound_bank.channel(2).program_number = 33
    path = tmp_path / "out.mid"
    manager.export_midi(path)

    other = ProjectManager()
    other.import_midi(path)
    assert other.track_set.all_notes() == manager.track_set.all_notes()
    assert other.transport.beat_settings.tempo == pytest.approx(100.0)
    assert other.transport.beat_settings.time_signature_numerator == 3
    assert other.sound_bank.channel(2).program_number == 33
    assert other.is_dirty


def test_exported_file_resolution(manager, tmp_path):
    path = tmp_path / "out.mid"
    manager.export_midi(path)
    midi = mido.MidiFile(str(path))
    assert midi.ticks_per_beat == 960
    assert len(midi.tracks) == 2


def _write_midi(path, ticks_per_beat, messages):
    midi = mido.MidiFile(ticks_per_beat=ticks_per_beat)
    midi.tracks.append(mido.MidiTrack(messages))
    midi.save(str(path))


def test_import_converts_resolution_and_normalizes(tmp_path):
    path = tmp_path / "in.mid"
    _write_midi(
        path,
        480,
        [
            mido.Message("note_on", note=60, velocity=90, channel=0, time=480),
            mido.Message("note_on", note=60, velocity=0, channel=0, time=480),
            mido.Message("note_on", note=70, velocity=90, channel=15, time=0),
        ],
    )
    pm = ProjectManager()
    pm.import_midi(path)
    track = pm.track_set.track(0)
    assert [event.tick for event in track] == [960, 1920]
    assert track[1].message.type == "note_off"
    assert pm.transport.beat_settings == BeatSettings()
    assert all(not pm.track_set.track(c) for c in range(1, 15))


def test_import_non_midi_file(tmp_path):
    path = tmp_path / "junk.mid"
    path.write_bytes(b"not a midi file at all")
    with pytest.raises(ProjectError) as info:
        ProjectManager().import_midi(path)
    assert info.value.title == "Import Failed"