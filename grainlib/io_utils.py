"""
File I/O utilities: audio discovery and loading into a Signal.
"""

import os
from pathlib import Path
from typing import List, Optional

import librosa
import numpy as np
import soundfile as sf

from .exceptions import AudioError
from .grain import Signal
from .logger import get_logger

logger = get_logger(__name__)

SUPPORTED_AUDIO_FORMATS = {'.wav', '.aiff', '.aif', '.flac', '.ogg'}


def discover_audio_files(directory: str) -> List[str]:
    """
    Recursively discover audio files in a directory.

    Args:
        directory: Path to search

    Returns:
        Sorted list of file paths for supported audio formats
    """
    if not os.path.isdir(directory):
        return []

    files = []
    for root, dirs, filenames in os.walk(directory):
        for filename in filenames:
            if Path(filename).suffix.lower() in SUPPORTED_AUDIO_FORMATS:
                files.append(os.path.join(root, filename))

    return sorted(files)


def load_signal(filepath: str, sr: Optional[int] = None) -> Signal:
    """
    Load an audio file into a multichannel Signal.

    All channels are kept (no down-mix); samples are float64 in
    (channels, samples) layout.

    Args:
        filepath: Path to audio file
        sr: Target sample rate in Hz; None keeps the file's rate

    Returns:
        Signal with the file's channels and the effective sample rate

    Raises:
        FileNotFoundError: If file does not exist
        AudioError: If the file cannot be decoded, is empty, or contains NaN/Inf
    """
    if not os.path.exists(filepath):
        logger.error(f"File not found: {filepath}")
        raise FileNotFoundError(f"Audio file not found: {filepath}")

    try:
        data, file_sr = sf.read(filepath, dtype="float64", always_2d=True)
    except Exception as e:
        logger.warning(f"Failed to load {filepath}: {e}")
        raise AudioError(
            "Could not load audio file",
            context={"filepath": filepath, "error": str(e)},
        ) from e

    audio = data.T

    if audio.shape[1] == 0:
        raise AudioError("Loaded audio is empty", context={"filepath": filepath})

    if np.any(np.isnan(audio)):
        raise AudioError("Audio contains NaN values", context={"filepath": filepath})

    if np.any(np.isinf(audio)):
        raise AudioError("Audio contains infinite values", context={"filepath": filepath})

    if sr is not None and sr != file_sr:
        logger.debug(f"Resampling {Path(filepath).name} from {file_sr} Hz to {sr} Hz")
        audio = librosa.resample(audio, orig_sr=file_sr, target_sr=sr)
        file_sr = sr

    return Signal(audio, file_sr)


def get_filename_stem(filepath: str) -> str:
    """Extract filename without extension."""
    return Path(filepath).stem
