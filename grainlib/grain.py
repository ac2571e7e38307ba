"""
Data model: signals, grains, and the per-grain feature store.

Grains are the fundamental unit of concatenative synthesis: one channel of
samples cut from a source signal, described by scalar features so grains can
be compared with each other.
"""

from enum import Enum
from typing import Dict, Iterator, Optional, Tuple

import numpy as np

from . import dsp_utils
from .exceptions import FeatureNotComputed, InvalidParameter, UnknownFeature


def _frozen_copy(audio: np.ndarray) -> np.ndarray:
    data = np.array(audio, dtype=np.float64, copy=True)
    data.setflags(write=False)
    return data


class Signal:
    """
    Immutable multichannel sample buffer with its sample rate.

    Samples are stored as a read-only float64 copy in (channels, samples)
    layout; a 1-D input becomes a single channel.
    """

    def __init__(self, audio: np.ndarray, sample_rate: float):
        if (
            isinstance(sample_rate, bool)
            or not isinstance(sample_rate, (int, float, np.integer, np.floating))
            or not np.isfinite(sample_rate)
            or sample_rate <= 0
        ):
            raise InvalidParameter(
                "Sample rate must be positive",
                context={"sample_rate": sample_rate},
            )
        self._data = _frozen_copy(dsp_utils.as_channels(audio))
        self.sample_rate = float(sample_rate)

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def channel_count(self) -> int:
        return self._data.shape[0]

    @property
    def sample_count(self) -> int:
        return self._data.shape[1]

    @property
    def duration_sec(self) -> float:
        return self.sample_count / self.sample_rate

    def __repr__(self) -> str:
        return (
            f"Signal(channels={self.channel_count}, samples={self.sample_count}, "
            f"sample_rate={self.sample_rate:g})"
        )


class Feature(Enum):
    """Closed set of scalar grain descriptors."""

    RMS = "rms"
    PEAK_ENERGY = "peak_energy"
    ZERO_CROSSING_RATE = "zero_crossing_rate"
    SPECTRAL_CENTROID = "spectral_centroid"
    SPECTRAL_FLATNESS = "spectral_flatness"
    SPECTRAL_CREST = "spectral_crest"
    SPECTRAL_ROLLOFF = "spectral_rolloff"
    SPECTRAL_KURTOSIS = "spectral_kurtosis"

    @classmethod
    def from_name(cls, name) -> "Feature":
        """
        Parse a feature from its value ("spectral_centroid") or member name
        ("SPECTRAL_CENTROID"), case-insensitively.

        Raises:
            UnknownFeature: If the name matches no feature
        """
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower().replace("-", "_")
        for feature in cls:
            if feature.value == key:
                return feature
        raise UnknownFeature(
            f"Unknown feature '{name}'",
            context={"known": ", ".join(f.value for f in cls)},
        )

    @property
    def is_spectral(self) -> bool:
        return self.value.startswith("spectral_")


class FeatureMap:
    """
    Feature -> value store owned by a single grain.

    A missing key means "not computed yet", which is distinct from a computed
    value of 0.0: get() returns None and indexing raises FeatureNotComputed.
    """

    def __init__(self):
        self._values: Dict[Feature, float] = {}

    def set(self, feature: Feature, value: float) -> None:
        self._values[Feature.from_name(feature)] = float(value)

    def get(self, feature: Feature, default: Optional[float] = None) -> Optional[float]:
        return self._values.get(Feature.from_name(feature), default)

    def is_computed(self, feature: Feature) -> bool:
        return Feature.from_name(feature) in self._values

    def __getitem__(self, feature: Feature) -> float:
        feature = Feature.from_name(feature)
        try:
            return self._values[feature]
        except KeyError:
            raise FeatureNotComputed(
                f"Feature '{feature.value}' has not been computed",
                context={"feature": feature.value},
            ) from None

    def __setitem__(self, feature: Feature, value: float) -> None:
        self.set(feature, value)

    def __contains__(self, feature) -> bool:
        try:
            return self.is_computed(feature)
        except UnknownFeature:
            return False

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._values)

    def items(self) -> Iterator[Tuple[Feature, float]]:
        return iter(self._values.items())

    def as_dict(self) -> Dict[str, float]:
        """Computed features keyed by their string value, in Feature order."""
        return {f.value: self._values[f] for f in Feature if f in self._values}

    def __repr__(self) -> str:
        return f"FeatureMap({self.as_dict()})"


class Grain:
    """
    One mono slice of a source signal.

    Sample content is fixed at creation (read-only copy, never a view of the
    source); only the feature map changes afterwards.

    Attributes:
        samples: Mono samples, including any trailing zero padding
        index: Position in the grain sequence
        start_sample: Offset of the first sample in the source signal
        valid_length: Number of samples taken from the source (excludes padding)
        sample_rate: Sample rate of the source in Hz
        features: Computed descriptors for this grain
    """

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: float,
        index: int = 0,
        start_sample: int = 0,
        valid_length: Optional[int] = None,
    ):
        self.samples = _frozen_copy(samples)
        if self.samples.ndim != 1:
            raise ValueError(f"Grain samples must be mono (1D), got shape {self.samples.shape}")
        self.sample_rate = float(sample_rate)
        self.index = index
        self.start_sample = start_sample
        self.valid_length = len(self.samples) if valid_length is None else valid_length
        self.features = FeatureMap()

    def __len__(self) -> int:
        return len(self.samples)

    @property
    def padding(self) -> int:
        return len(self.samples) - self.valid_length

    @property
    def valid_samples(self) -> np.ndarray:
        """Samples taken from the source, without trailing padding."""
        return self.samples[: self.valid_length]

    @property
    def duration_sec(self) -> float:
        return len(self.samples) / self.sample_rate

    def __repr__(self) -> str:
        return (
            f"Grain(index={self.index}, start={self.start_sample}, "
            f"length={len(self.samples)}, padding={self.padding})"
        )
