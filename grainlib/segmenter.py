"""
Grain segmentation: split a signal into equal-length, down-mixed grains.

The signal is walked start to end in non-overlapping windows of
samples_per_grain samples. Each window is down-mixed to mono and becomes one
grain; leftover samples at the end become a final grain zero-padded up to
samples_per_grain. A signal shorter than one grain becomes a single,
unpadded grain.

Windowing (partition) and down-mixing (dsp_utils.downmix) are separate pure
transforms composed by create_grains.
"""

import math
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from . import dsp_utils
from .exceptions import InvalidParameter
from .grain import Grain, Signal
from .logger import get_logger

logger = get_logger(__name__)

# Absorbs binary representation error in sample_rate * grain_length_ms / 1000
_SAMPLE_EPSILON = 1e-9


def samples_per_grain(sample_rate: float, grain_length_ms: float) -> int:
    """
    Number of samples in one grain: floor(sample_rate * grain_length_ms / 1000).

    Returns 0 for non-positive grain lengths.
    """
    if grain_length_ms <= 0:
        return 0
    return int(math.floor(sample_rate * grain_length_ms / 1000.0 + _SAMPLE_EPSILON))


def expected_grain_count(sample_count: int, grain_samples: int) -> int:
    """
    Number of grains create_grains produces for a signal of sample_count samples.

    ceil(sample_count / grain_samples), except that a signal shorter than one
    grain always yields exactly one grain, and a non-positive grain size yields
    none.
    """
    if grain_samples <= 0:
        return 0
    if sample_count < grain_samples:
        return 1
    return -(-sample_count // grain_samples)


def partition(audio: np.ndarray, grain_samples: int) -> Iterator[Tuple[int, np.ndarray]]:
    """
    Walk (channels, samples) audio in non-overlapping windows.

    Yields (start_sample, block) pairs; every block has grain_samples samples
    except possibly the last, which holds the remainder. Blocks are views into
    audio; callers copy what they keep.

    Args:
        audio: Multichannel audio, (channels, samples) or 1-D mono
        grain_samples: Window size in samples (must be positive)
    """
    if grain_samples <= 0:
        raise ValueError(f"Window size must be positive, got {grain_samples}")

    channels = dsp_utils.as_channels(audio)
    sample_count = channels.shape[1]
    for start in range(0, sample_count, grain_samples):
        yield start, channels[:, start:start + grain_samples]


def create_grains(
    signal: Union[Signal, np.ndarray],
    grain_length_ms: float,
    sample_rate: Optional[float] = None,
) -> List[Grain]:
    """
    Split a signal into mono grains of grain_length_ms.

    Args:
        signal: Signal, or raw audio as (channels, samples) / 1-D mono array
        grain_length_ms: Grain duration in milliseconds
        sample_rate: Samples per second (defaults to signal.sample_rate)

    Returns:
        Grains in source order. Empty if grain_length_ms <= 0 or a grain would
        be shorter than one sample. A single unpadded grain if the whole
        signal is shorter than one grain.

    Raises:
        InvalidParameter: If a raw array is given without a sample rate
    """
    if grain_length_ms <= 0:
        return []

    if sample_rate is None:
        if not isinstance(signal, Signal):
            raise InvalidParameter("sample_rate is required when segmenting a raw array")
        sample_rate = signal.sample_rate

    audio = signal.data if isinstance(signal, Signal) else dsp_utils.as_channels(signal)
    sample_count = audio.shape[1]

    grain_samples = samples_per_grain(sample_rate, grain_length_ms)
    if grain_samples <= 0:
        logger.debug(
            f"Grain of {grain_length_ms} ms is shorter than one sample at {sample_rate:g} Hz; no grains"
        )
        return []

    # Whole signal fits inside one grain: keep it as-is, unpadded
    if sample_count < grain_samples:
        return [Grain(dsp_utils.downmix(audio), sample_rate, index=0, start_sample=0, valid_length=sample_count)]

    grains = []
    for index, (start, block) in enumerate(partition(audio, grain_samples)):
        mono = dsp_utils.downmix(block)
        valid_length = len(mono)
        grains.append(
            Grain(
                dsp_utils.pad_to_length(mono, grain_samples),
                sample_rate,
                index=index,
                start_sample=start,
                valid_length=valid_length,
            )
        )

    logger.debug(
        f"Segmented {sample_count} samples x {audio.shape[0]} channel(s) into "
        f"{len(grains)} grain(s) of {grain_samples} samples"
    )
    return grains


def reconstruct(grains: Sequence[Grain]) -> np.ndarray:
    """Concatenate the de-padded samples of grains (the down-mixed source)."""
    if not grains:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate([grain.valid_samples for grain in grains])
