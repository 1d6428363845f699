"""MIDI sequencer model: tracks, recording, sound bank, previews, drum machine and projects."""

__version__ = "1.0.0"

__all__ = ["drums", "preview", "project", "recording", "soundbank", "tracks"]