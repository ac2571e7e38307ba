"""
Grain annotation: compute features over grains and store them per grain.

Each grain is analysed independently; a task touches only its own grain's
samples and writes only to its own feature map, so grains can be processed
in parallel without locks.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence

from . import features as feature_funcs
from .exceptions import InvalidParameter
from .grain import Feature, Grain
from .logger import get_logger

logger = get_logger(__name__)

ALL_FEATURES = tuple(Feature)


def annotate_grain(
    grain: Grain,
    feature,
    rolloff_percentile: float = feature_funcs.DEFAULT_ROLLOFF_PERCENTILE,
) -> float:
    """
    Compute one feature over the grain's samples and store it in grain.features.

    The whole sample block is analysed, trailing zero padding included.
    Calling again on the same grain recomputes the same value.

    Returns:
        The computed value
    """
    feature = Feature.from_name(feature)
    value = feature_funcs.compute_feature(feature, grain.samples, rolloff_percentile)
    grain.features.set(feature, value)
    return value


def annotate_grain_features(
    grain: Grain,
    features: Iterable = ALL_FEATURES,
    rolloff_percentile: float = feature_funcs.DEFAULT_ROLLOFF_PERCENTILE,
) -> Grain:
    """Compute several features on one grain; returns the same grain."""
    for feature in features:
        annotate_grain(grain, feature, rolloff_percentile)
    return grain


class GrainClassifier:
    """
    Annotate a batch of grains with a fixed set of features.

    Work is spread over grains with a thread pool; results come back in grain
    order. numpy releases the GIL inside the FFT and reductions, so threads
    overlap the heavy part of the spectral features.
    """

    def __init__(
        self,
        features: Optional[Iterable] = None,
        rolloff_percentile: float = feature_funcs.DEFAULT_ROLLOFF_PERCENTILE,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            features: Features (members or names) to compute; all when None
            rolloff_percentile: Energy fraction for SPECTRAL_ROLLOFF
            max_workers: Thread count; None for the executor default, 1 to run inline

        Raises:
            UnknownFeature: If a feature name is not recognised
            InvalidParameter: If max_workers is not a positive integer
        """
        if max_workers is not None and (
            isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers <= 0
        ):
            raise InvalidParameter(
                "max_workers must be a positive integer",
                context={"max_workers": max_workers},
            )

        selected = ALL_FEATURES if features is None else features
        # Keep first occurrence order, drop duplicates
        self.features: List[Feature] = list(dict.fromkeys(Feature.from_name(f) for f in selected))
        self.rolloff_percentile = rolloff_percentile
        self.max_workers = max_workers

    def _annotate(self, grain: Grain) -> Grain:
        return annotate_grain_features(grain, self.features, self.rolloff_percentile)

    def classify(self, grains: Sequence[Grain]) -> List[Grain]:
        """
        Compute every configured feature on every grain.

        Args:
            grains: Grains to annotate in place

        Returns:
            The same grains, in input order
        """
        grains = list(grains)
        if not grains or not self.features:
            return grains

        if self.max_workers == 1 or len(grains) == 1:
            results = [self._annotate(grain) for grain in grains]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(self._annotate, grains))

        logger.debug(
            f"Computed {len(self.features)} feature(s) on {len(results)} grain(s) "
            f"({', '.join(f.value for f in self.features)})"
        )
        return results

    def feature_table(self, grains: Sequence[Grain]) -> List[Dict[str, float]]:
        """
        One row per grain: index, start_sample and each configured feature.

        Features not yet computed on a grain are reported as None.
        """
        rows = []
        for grain in grains:
            row = {"index": grain.index, "start_sample": grain.start_sample}
            for feature in self.features:
                row[feature.value] = grain.features.get(feature)
            rows.append(row)
        return rows
