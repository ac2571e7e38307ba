"""
DSP utilities: down-mixing, padding, windowing, magnitude spectrum.
"""

import numpy as np
from scipy import signal


def as_channels(audio: np.ndarray) -> np.ndarray:
    """
    View audio as a 2-D (channels, samples) array.

    A 1-D array is treated as a single channel. The data is not copied.

    Raises:
        ValueError: If audio has more than two dimensions
    """
    audio = np.asarray(audio, dtype=np.float64)
    if audio.ndim == 1:
        return audio.reshape(1, -1)
    if audio.ndim == 2:
        return audio
    raise ValueError(
        f"Cannot interpret {audio.ndim}D array as audio. "
        f"Expected 1D (samples,) or 2D (channels, samples)."
    )


def downmix(block: np.ndarray) -> np.ndarray:
    """
    Reduce a (channels, samples) block to mono by averaging across channels.

    Every output sample is the sum of all channel values at that position
    divided by the channel count. A block with no channels down-mixes to
    silence of the same length.

    Args:
        block: Audio in (channels, samples) layout, or 1-D mono

    Returns:
        New mono array (samples,), never a view of the input
    """
    block = as_channels(block)
    channel_count, sample_count = block.shape
    if channel_count == 0:
        return np.zeros(sample_count, dtype=np.float64)
    return block.sum(axis=0) / channel_count


def pad_to_length(audio: np.ndarray, length: int) -> np.ndarray:
    """Zero-fill mono audio at the end up to length samples (never truncates)."""
    if len(audio) >= length:
        return audio
    return np.pad(audio, (0, length - len(audio)))


def hann_window(length: int) -> np.ndarray:
    """Create a periodic Hann window."""
    return signal.windows.hann(length, sym=False)


def magnitude_spectrum(samples: np.ndarray) -> np.ndarray:
    """
    Magnitude spectrum of one Hann-windowed frame covering all samples.

    The FFT size equals the number of samples (no zero-padding, no overlap),
    so the result has len(samples) // 2 + 1 bins. Empty input gives an empty
    spectrum.

    Args:
        samples: Mono samples

    Returns:
        Non-negative magnitudes, one per frequency bin
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.size == 0:
        return np.zeros(0, dtype=np.float64)
    windowed = samples * hann_window(samples.size)
    return np.abs(np.fft.rfft(windowed))

