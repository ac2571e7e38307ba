"""
Grain descriptors: pure functions from a sequence of mono samples to a float.

Time-domain features work on the samples directly. Spectral features work on
the magnitude spectrum of a single Hann-windowed frame spanning the whole
grain (see dsp_utils.magnitude_spectrum) and report frequencies as bin
indices. Descriptor definitions follow Peeters (2003), "A large set of audio
features for sound description", and the Gist audio analysis library.

Every function is total: empty and single-sample input return 0.0, and a
silent spectrum returns 0.0 instead of dividing by zero.
"""

import functools
from typing import Callable, Dict

import numpy as np

from . import dsp_utils
from .grain import Feature

DEFAULT_ROLLOFF_PERCENTILE = 0.85

# Floor for magnitudes inside the geometric mean (log(0) guard)
_FLATNESS_AMIN = 1e-10

# Spectra whose spread is below this fraction of their mean count as flat
_FLAT_TOLERANCE = 1e-9


def _as_samples(samples) -> np.ndarray:
    return np.asarray(samples, dtype=np.float64).ravel()


# ============================================================================
# TIME DOMAIN
# ============================================================================

def root_mean_square(samples) -> float:
    """sqrt(mean(samples ** 2)); 0.0 for empty input."""
    x = _as_samples(samples)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x ** 2)))


def peak_energy(samples) -> float:
    """Largest sample value (signed, not absolute); 0.0 for empty input."""
    x = _as_samples(samples)
    if x.size == 0:
        return 0.0
    return float(np.max(x))


def zero_crossing_rate(samples) -> float:
    """
    Count of adjacent sample pairs that change sign.

    A pair counts only when one sample is strictly negative and the other
    strictly positive; pairs touching zero do not count. Noisier sounds tend
    to have a higher rate. 0.0 for fewer than two samples.
    """
    x = _as_samples(samples)
    if x.size < 2:
        return 0.0
    current, following = x[:-1], x[1:]
    crossings = ((current < 0) & (following > 0)) | ((current > 0) & (following < 0))
    return float(np.count_nonzero(crossings))


# ============================================================================
# FREQUENCY DOMAIN
# ============================================================================

def _spectrum(samples) -> np.ndarray:
    x = _as_samples(samples)
    if x.size < 2:
        return np.zeros(0, dtype=np.float64)
    return dsp_utils.magnitude_spectrum(x)


def spectral_centroid(samples) -> float:
    """
    Magnitude-weighted mean bin index ("brightness").

    Returns:
        Centroid in bins; 0.0 for fewer than two samples or a silent spectrum
    """
    mag = _spectrum(samples)
    total = np.sum(mag)
    if total <= 0:
        return 0.0
    # Scale to the peak so tiny magnitudes keep their precision
    weights = mag / np.max(mag)
    bins = np.arange(mag.size)
    return float(np.sum(bins * weights) / np.sum(weights))


def spectral_flatness(samples) -> float:
    """
    Geometric mean over arithmetic mean of the magnitude spectrum.

    Close to 1.0 for noise-like grains, close to 0.0 for tonal grains.
    """
    mag = _spectrum(samples)
    if mag.size == 0 or np.sum(mag) <= 0:
        return 0.0
    floored = np.maximum(mag, _FLATNESS_AMIN)
    geometric = np.exp(np.mean(np.log(floored)))
    arithmetic = np.mean(floored)
    return float(min(geometric / arithmetic, 1.0))


def spectral_crest(samples) -> float:
    """
    Peak magnitude over RMS magnitude.

    High for tonal, peaky spectra; low (towards 1.0) for flat ones.
    """
    mag = _spectrum(samples)
    if mag.size == 0:
        return 0.0
    peak = np.max(mag)
    if peak <= 0:
        return 0.0
    return float(1.0 / np.sqrt(np.mean((mag / peak) ** 2)))


def spectral_rolloff(samples, percentile: float = DEFAULT_ROLLOFF_PERCENTILE) -> float:
    """
    Lowest bin below which percentile of the spectral energy lies.

    Energy is the squared magnitude. Out-of-range percentiles are clamped:
    percentile <= 0 gives the lowest bin with any energy, percentile >= 1
    gives the top bin. Non-decreasing in percentile.

    Args:
        samples: Mono samples
        percentile: Energy fraction, e.g. 0.85

    Returns:
        Bin index as a float; 0.0 for fewer than two samples
    """
    mag = _spectrum(samples)
    if mag.size == 0:
        return 0.0

    top_bin = mag.size - 1
    if percentile >= 1:
        return float(top_bin)

    energy = mag ** 2
    total = np.sum(energy)
    if total <= 0:
        return 0.0

    first_bin = int(np.flatnonzero(energy > 0)[0])
    if percentile <= 0:
        return float(first_bin)

    cumulative = np.cumsum(energy)
    index = int(np.searchsorted(cumulative, percentile * total, side="left"))
    return float(min(max(index, first_bin), top_bin))


def spectral_kurtosis(samples) -> float:
    """
    Fourth standardized moment of the magnitude spectrum values ("peakiness").

    Non-excess kurtosis: mean((m - mean)^4) / var^2. 0.0 when every bin has
    the same magnitude.
    """
    mag = _spectrum(samples)
    if mag.size == 0:
        return 0.0
    peak = np.max(mag)
    if peak <= 0:
        return 0.0
    mag = mag / peak
    mean = np.mean(mag)
    centered = mag - mean
    variance = np.mean(centered ** 2)
    if variance <= 0 or np.sqrt(variance) <= _FLAT_TOLERANCE * mean:
        return 0.0
    return float(np.mean(centered ** 4) / variance ** 2)


def bin_to_hz(bin_index: float, n_fft: int, sample_rate: float) -> float:
    """Convert a spectral bin index to Hz for an n_fft-point transform."""
    if n_fft <= 0:
        return 0.0
    return float(bin_index) * sample_rate / n_fft


# ============================================================================
# REGISTRY
# ============================================================================

def _samples_only(func: Callable) -> Callable:
    """Adapt a one-argument descriptor to the (samples, percentile) registry signature."""
    @functools.wraps(func)
    def wrapper(samples, percentile: float = DEFAULT_ROLLOFF_PERCENTILE) -> float:
        return func(samples)
    return wrapper


# Every entry is called as func(samples, percentile)
FEATURE_FUNCTIONS: Dict[Feature, Callable] = {
    Feature.RMS: _samples_only(root_mean_square),
    Feature.PEAK_ENERGY: _samples_only(peak_energy),
    Feature.ZERO_CROSSING_RATE: _samples_only(zero_crossing_rate),
    Feature.SPECTRAL_CENTROID: _samples_only(spectral_centroid),
    Feature.SPECTRAL_FLATNESS: _samples_only(spectral_flatness),
    Feature.SPECTRAL_CREST: _samples_only(spectral_crest),
    Feature.SPECTRAL_ROLLOFF: spectral_rolloff,
    Feature.SPECTRAL_KURTOSIS: _samples_only(spectral_kurtosis),
}


def compute_feature(feature, samples, rolloff_percentile: float = DEFAULT_ROLLOFF_PERCENTILE) -> float:
    """
    Compute one feature by name or Feature member.

    rolloff_percentile only affects SPECTRAL_ROLLOFF; the other descriptors
    ignore it.

    Raises:
        UnknownFeature: If feature is not a known descriptor
    """
    return FEATURE_FUNCTIONS[Feature.from_name(feature)](samples, rolloff_percentile)
