[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "midiworks"
version = "1.0.0"
description = "MIDI sequencer model: tracks, loop recording, sound bank, drum machine and project files"
requires-python = ">=3.10"
keywords = ["midi", "sequencer", "drum machine", "recording", "quantize"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
]
dependencies = ["mido"]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["midiworks"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
