import pytest

from midiworks.drums import DrumMachine, DrumPad, DrumRow


def test_default_rows_follow_general_midi_map():
    machine = DrumMachine()
    assert [(r.name, r.pitch) for r in machine.rows] == [
        ("Kick", 35),
        ("Snare", 38),
        ("Clap", 39),
        ("Closed HH", 42),
        ("Open HH", 46),
        ("Low Tom", 45),
        ("Crash", 49),
        ("Ride", 51),
    ]
    assert machine.row_count == 8
    assert machine.column_count == 16
    assert machine.channel == 9
    assert machine.muted is True
    assert all(len(r.pads) == 16 for r in machine.rows)


def test_pattern_empty_when_no_pads():
    assert DrumMachine().pattern == []


def test_toggle_pad_renders_note_pair():
    machine = DrumMachine()
    machine.toggle_pad(0, 3)
    duration = machine.pad_duration(machine.loop_duration)
    pattern = machine.pattern
    assert len(pattern) == 2
    on, off = pattern
    assert on.message.type == "note_on"
    assert on.message.note == 35
    assert on.message.velocity == 100
    assert on.message.channel == 9
    assert on.tick == 3 * duration
    assert off.message.type == "note_off"
    assert off.tick == on.tick + duration // 2


def test_toggle_twice_disables():
    machine = DrumMachine()
    machine.toggle_pad(1, 2)
    assert machine.is_pad_enabled(1, 2)
    machine.toggle_pad(1, 2)
    assert not machine.is_pad_enabled(1, 2)
    assert machine.pattern == []


def test_toggle_out_of_range_ignored():
    machine = DrumMachine()
    machine.toggle_pad(99, 0)
    machine.toggle_pad(0, 16)
    machine.enable_pad(0, 16)
    assert machine.pattern == []


def test_enable_pad_is_idempotent():
    machine = DrumMachine()
    machine.enable_pad(2, 5)
    machine.enable_pad(2, 5)
    assert machine.is_pad_enabled(2, 5)
    assert len(machine.pattern) == 2


def test_pattern_sorted_by_tick():
    machine = DrumMachine()
    machine.toggle_pad(0, 8)
    machine.toggle_pad(3, 0)
    machine.toggle_pad(1, 4)
    ticks = [e.tick for e in machine.pattern]
    assert ticks == sorted(ticks)
    assert len(ticks) == 6


def test_pad_velocity_used_in_pattern():
    machine = DrumMachine()
    machine.toggle_pad(0, 0)
    machine.set_pad_velocity(0, 0, 64)
    assert machine.pattern[0].message.velocity == 64


def test_set_pad_velocity_out_of_range_raises():
    with pytest.raises(IndexError):
        DrumMachine().set_pad_velocity(50, 0, 10)


def test_set_channel_and_pitch_reflected():
    machine = DrumMachine()
    machine.toggle_pad(0, 0)
    machine.set_channel(3)
    machine.set_pitch(0, 60)
    assert all(e.message.channel == 3 for e in machine.pattern)
    assert all(e.message.note == 60 for e in machine.pattern)


def test_update_pattern_same_duration_keeps_cache():
    machine = DrumMachine()
    machine.toggle_pad(0, 1)
    first = machine.pattern
    machine.update_pattern(machine.loop_duration)
    assert machine.pattern is first


def test_update_pattern_rescales_ticks():
    machine = DrumMachine()
    machine.toggle_pad(0, 1)
    machine.update_pattern(machine.loop_duration * 2)
    duration = machine.pad_duration(machine.loop_duration)
    assert machine.pattern[0].tick == duration


def test_set_column_count_preserves_pads():
    machine = DrumMachine()
    machine.toggle_pad(0, 2)
    machine.set_column_count(32)
    assert machine.column_count == 32
    assert all(len(r.pads) == 32 for r in machine.rows)
    assert machine.is_pad_enabled(0, 2)
    assert not machine.is_pad_enabled(0, 31)
    machine.set_column_count(4)
    assert all(len(r.pads) == 4 for r in machine.rows)
    assert machine.is_pad_enabled(0, 2)


def test_set_column_count_rejects_zero():
    with pytest.raises(ValueError):
        DrumMachine().set_column_count(0)


def test_add_and_remove_rows():
    machine = DrumMachine()
    machine.add_row("Cowbell", 56)
    assert machine.row_count == 9
    assert machine.row(8) == DrumRow("Cowbell", 56, [DrumPad() for _ in range(16)])
    machine.remove_row(0)
    assert machine.row(0).name == "Snare"
    machine.remove_row(100)
    assert machine.row_count == 8


def test_clear_disables_everything():
    machine = DrumMachine()
    machine.toggle_pad(0, 0)
    machine.toggle_pad(5, 7)
    machine.clear()
    assert not any(p.enabled for r in machine.rows for p in r.pads)
    assert machine.pattern == []


def test_column_at_tick():
    machine = DrumMachine()
    duration = machine.pad_duration(machine.loop_duration)
    start = 1000
    assert machine.column_at_tick(start + 3 * duration, start) == 3
    assert machine.column_at_tick(start + 3 * duration + duration // 2, start) == 4
    assert machine.column_at_tick(start + 3 * duration + duration // 2 - 1, start) == 3
    assert machine.column_at_tick(start - 1, start) is None
    assert machine.column_at_tick(start + machine.loop_duration, start) is None


def test_is_column_on_measure():
    machine = DrumMachine()
    duration = machine.pad_duration(machine.loop_duration)
    measure = 4 * duration
    assert machine.is_column_on_measure(0, measure)
    assert machine.is_column_on_measure(4, measure)
    assert not machine.is_column_on_measure(3, measure)


def test_pad_duration_divides_loop():
    machine = DrumMachine()
    assert machine.pad_duration(15360) * machine.column_count == 15360
    machine.set_column_count(8)
    assert machine.pad_duration(15360) * 8 == 15360