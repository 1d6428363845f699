# midiworks

The model layer of a MIDI sequencer. It keeps note data for fifteen
channels and records live input, including loop recording. Playback is
routed through a sound bank that applies mute, solo and record rules. The
package also has a step-sequencer drum machine. Projects can be saved as
JSON, and Standard MIDI Files can be exported and imported.

All MIDI messages are `mido.Message` objects.

## Install

```
pip install midiworks
```

## Modules

### `midiworks.tracks`

- `TimedMidiEvent(message, tick)` places a message at an absolute tick.
- `NoteLocation` describes one note found in a track: a Note On paired
  with the first later Note Off of the same pitch. It holds the track
  index, both event indices, the start and end ticks, the pitch and the
  velocity.
- `TrackSet` holds one event list per channel (0–14).
  - `track(channel)` returns a channel's list.
  - `find_start(tick)` and `play_back(current_tick)` give cursor-based
    playback. `play_back` returns the messages that are due and moves
    each cursor on.
  - For lookup there are `find_note_at`, `find_note_in_track`,
    `find_notes_in_region`, `all_notes` and `all_events`. The `find_note_*`
    methods return `None` when no note matches.
  - `finalize_recording(buffer)` moves recorded events into their
    channels' tracks and empties the buffer.
- Helpers for a single track:
  - `notes_from_track` and `sort_track`.
  - `separate_overlapping_notes` ends a note one tick before the next
    Note On of the same pitch and channel.
  - `quantize_track(track, grid_size)` quantizes by duration. A note
    shorter than one grid step is stretched to one step. A longer note
    has its start and end snapped separately.
  - `round_to_grid(tick, grid_size)` rounds a tick to the grid.

### `midiworks.recording`

`RecordingSession` is the recording buffer.

- `record_event(message, tick)` appends a message to the buffer and
  keeps track of which notes are still held.
- At a loop boundary, `wrap_active_notes_at_loop` ends the held notes and
  starts them again at the loop start.
- `close_all_active_notes` ends every held note.
- `reset_loop_playback` and `loop_playback_messages` play the buffer back
  during loop recording.

### `midiworks.soundbank`

`MidiChannel` holds the settings of one channel: program, volume, mute,
solo, record, name and colour.

`SoundBank` keeps fifteen channels with default programs and colours.
Channel 10 is set up as percussion. The bank sends to an output, which
can be any object with a `send(message)` method, such as an output port
opened with mido. It has no output until you pass one with `SoundBank(output)`
or `set_output(device)`. Without an output, nothing is sent.

- `should_channel_play` and `play_messages` apply the routing rules. If
  any channel is soloed, only soloed channels play. Otherwise muted
  channels are skipped.
- Other methods: `apply_channel_settings`, `play_note`, `stop_note`,
  `silence_all_channels`, `play_metronome_click` (on channel 16),
  `play_preview_note` and `stop_preview_note`.

### `midiworks.preview`

`PreviewManager` holds three preview records: `NoteAddPreview`,
`NoteEditPreview` and `MultiNoteEditPreview`. They describe notes that
are being added, moved or resized.

`set_note_add_preview` first checks for collisions in every
record-enabled track. It returns whether the preview was updated, and it
plays the preview note through the sound bank.

### `midiworks.drums`

`DrumMachine` is a grid of `DrumRow`s, each holding `DrumPad`s.

- It starts with eight General MIDI drum rows and 16 columns, on
  channel 10, muted.
- `update_pattern(loop_duration)` spreads the columns evenly over the
  loop.
- `pattern` returns the rendered note events, starting at tick 0.
- `column_at_tick` finds the column nearest to a tick.

### `midiworks.project`

`ProjectManager` works on a sound bank, a track set, a recording session
and a transport. Any of these that is not given is created for it. The
transport may be any object with `beat_settings`, `current_tick`,
`stop()` and `reset()`.

- `save_project` and `load_project` read and write JSON project files.
- `export_midi` writes a Standard MIDI File at 960 ticks per quarter.
- `import_midi` replaces the tracks with the notes of a MIDI file. It
  converts ticks to 960 per quarter and takes the first tempo and time
  signature.
- `clear_project` resets everything to defaults.
- `is_dirty`, `mark_dirty`, `mark_clean` and the `on_dirty_change`
  callback track unsaved changes.
- Any of these operations that fails raises `ProjectError`, which carries
  a `title` and a `message`.

## Example

```python
import mido

from midiworks.project import ProjectError, ProjectManager
from midiworks.tracks import TimedMidiEvent, quantize_track

manager = ProjectManager()
track = manager.track_set.track(0)
track.append(TimedMidiEvent(mido.Message("note_on", note=60, velocity=100), 10))
track.append(TimedMidiEvent(mido.Message("note_off", note=60), 950))
quantize_track(track, 240)

try:
    manager.save_project("song.mwp")
    manager.export_midi("song.mid")
except ProjectError as error:
    print(error.title, error.message)
```

## What it does not do

This is the model only. It has no user interface, no command-line
program and no undo/redo history. It has no playback clock either: a
transport that advances ticks and calls `play_back` is left to you. It
does not open MIDI devices. You supply the output object that the sound
bank sends to.

## Tests

```
pip install -e .[test]
pytest
```