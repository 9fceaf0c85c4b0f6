"""Chime playback backends.

Every backend exposes ``play()`` and returns immediately; playback runs in
the background and failures are logged, never raised to the scheduler.
"""
import math
import shlex
import struct
import subprocess
import sys
import wave
from pathlib import Path

from loguru import logger

logger = logger.bind(module="sound")

SAMPLE_RATE = 44100

# Westminster quarter: E4 G#4 F#4 B3
WESTMINSTER_NOTES = [329.63, 415.30, 369.99, 246.94]


def generate_chime(output_path: str | Path, notes: list[float] | None = None,
                   note_duration: float = 0.6) -> Path:
    """Render a bell-like chime to a 16-bit mono WAV file.

    Each note is a sine with its octave overtone and an exponential decay.

    Args:
        output_path: Where to write the file
        notes: Note frequencies in Hz, played in sequence
        note_duration: Seconds per note

    Returns:
        Path of the written file
    """
    notes = notes or WESTMINSTER_NOTES
    output_path = Path(output_path).expanduser()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    samples_per_note = int(SAMPLE_RATE * note_duration)
    frames = bytearray()
    for freq in notes:
        for i in range(samples_per_note):
            t = i / SAMPLE_RATE
            envelope = math.exp(-t * 4.0)
            sample = 0.35 * math.sin(2 * math.pi * freq * t)
            sample += 0.15 * math.sin(2 * math.pi * freq * 2 * t)
            sample = max(-1.0, min(1.0, sample * envelope))
            frames += struct.pack("<h", int(sample * 32767))

    with wave.open(str(output_path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(bytes(frames))

    logger.debug(f"Chime written to {output_path}")
    return output_path


class BellSound:
    """Rings the terminal bell."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def play(self) -> None:
        try:
            self.stream.write("\a")
            self.stream.flush()
        except (OSError, ValueError) as e:
            logger.error(f"Bell failed: {e}")


class CommandSound:
    """Plays a WAV file through an external player (``aplay``, ``afplay``, ...).

    The player is started and not waited on.
    """

    def __init__(self, command: str = "aplay", sound_file: str | Path | None = None,
                 data_dir: str | Path = "~/.westminster"):
        self.command = shlex.split(command)
        if sound_file is None:
            sound_file = Path(data_dir).expanduser() / "chime.wav"
            if not sound_file.exists():
                generate_chime(sound_file)
        self.sound_file = Path(sound_file).expanduser()
        self._process: subprocess.Popen | None = None

    def play(self) -> None:
        # Don't stack chimes if the previous one is still ringing
        if self._process is not None and self._process.poll() is None:
            logger.debug("Previous chime still playing, skipping")
            return
        try:
            self._process = subprocess.Popen(
                [*self.command, str(self.sound_file)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error(f"Failed to start {self.command[0]}: {e}")


class SilentSound:
    """Plays nothing; used when sound is disabled."""

    def play(self) -> None:
        logger.debug("Chime (silent)")


def create_sound(kind: str, command: str = "aplay", sound_file: str | Path | None = None,
                 data_dir: str | Path = "~/.westminster"):
    """Create a sound backend by name."""
    if kind == "bell":
        return BellSound()
    if kind == "command":
        return CommandSound(command=command, sound_file=sound_file, data_dir=data_dir)
    if kind == "none":
        return SilentSound()
    raise ValueError(f"Unknown sound backend: {kind}")
