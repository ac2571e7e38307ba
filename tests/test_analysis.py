"""
Tests for grain annotation and the batch classifier.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from grainlib import analysis, features, segmenter
from grainlib.exceptions import InvalidParameter, UnknownFeature
from grainlib.grain import Feature, Grain, Signal


@pytest.fixture
def grains():
    rng = np.random.default_rng(42)
    t = np.arange(44100) / 44100
    tone = 0.5 * np.sin(2 * np.pi * 440 * t)
    noise = 0.1 * rng.standard_normal(44100)
    signal = Signal(np.vstack([tone, noise]), 44100)
    return segmenter.create_grains(signal, 50)


class TestAnnotateGrain:

    def test_stores_and_returns_value(self):
        grain = Grain(np.array([-2.0, 5.0, -8.0, 9.0, -4.0]), 1000)
        value = analysis.annotate_grain(grain, Feature.ZERO_CROSSING_RATE)

        assert value == 4.0
        assert grain.features[Feature.ZERO_CROSSING_RATE] == 4.0

    def test_only_requested_feature_changes(self):
        grain = Grain(np.ones(16), 1000)
        analysis.annotate_grain(grain, Feature.RMS)

        assert grain.features.is_computed(Feature.RMS)
        assert len(grain.features) == 1
        assert grain.features.get(Feature.PEAK_ENERGY) is None

    def test_idempotent(self):
        grain = Grain(np.random.default_rng(0).standard_normal(512), 44100)
        first = analysis.annotate_grain(grain, Feature.SPECTRAL_KURTOSIS)
        second = analysis.annotate_grain(grain, Feature.SPECTRAL_KURTOSIS)

        assert first == second
        assert grain.features[Feature.SPECTRAL_KURTOSIS] == first

    def test_padding_is_analysed(self):
        samples = np.array([1.0, 1.0, 0.0, 0.0])
        grain = Grain(samples, 1000, valid_length=2)
        analysis.annotate_grain(grain, Feature.RMS)

        assert grain.features[Feature.RMS] == pytest.approx(features.root_mean_square(samples))

    def test_rolloff_percentile(self):
        t = np.arange(256)
        grain = Grain(np.sin(2 * np.pi * 8 * t / 256), 1000)

        assert analysis.annotate_grain(grain, Feature.SPECTRAL_ROLLOFF, rolloff_percentile=0.5) == 8.0

    def test_unknown_feature(self):
        with pytest.raises(UnknownFeature):
            analysis.annotate_grain(Grain(np.ones(4), 1000), "brightness")

    def test_annotate_all(self):
        grain = Grain(np.random.default_rng(1).standard_normal(128), 1000)
        result = analysis.annotate_grain_features(grain)

        assert result is grain
        assert set(grain.features) == set(Feature)


class TestIndependence:
    """Annotating one grain never touches another."""

    def test_other_grains_untouched(self, grains):
        analysis.annotate_grain(grains[3], Feature.SPECTRAL_CENTROID)

        for i, grain in enumerate(grains):
            if i != 3:
                assert len(grain.features) == 0

    def test_same_values_regardless_of_order(self, grains):
        forward = [analysis.annotate_grain(g, Feature.SPECTRAL_FLATNESS) for g in grains]
        backward = [analysis.annotate_grain(g, Feature.SPECTRAL_FLATNESS) for g in reversed(grains)]
        assert forward == backward[::-1]


class TestGrainClassifier:

    def test_defaults_to_all_features(self):
        classifier = analysis.GrainClassifier()
        assert classifier.features == list(Feature)

    def test_names_and_duplicates(self):
        classifier = analysis.GrainClassifier(features=["rms", Feature.RMS, "spectral-crest"])
        assert classifier.features == [Feature.RMS, Feature.SPECTRAL_CREST]

    def test_classify_annotates_every_grain(self, grains):
        result = analysis.GrainClassifier(max_workers=4).classify(grains)

        assert [g.index for g in result] == [g.index for g in grains]
        for grain in result:
            assert set(grain.features) == set(Feature)

    def test_parallel_matches_inline(self, grains):
        copies = [Grain(g.samples, g.sample_rate, g.index, g.start_sample, g.valid_length) for g in grains]

        analysis.GrainClassifier(max_workers=1).classify(grains)
        analysis.GrainClassifier(max_workers=8).classify(copies)

        for inline, threaded in zip(grains, copies):
            assert inline.features.as_dict() == threaded.features.as_dict()

    def test_empty_batch(self):
        assert analysis.GrainClassifier().classify([]) == []

    def test_subset_only(self, grains):
        analysis.GrainClassifier(features=["rms"], max_workers=2).classify(grains)
        for grain in grains:
            assert list(grain.features) == [Feature.RMS]

    @pytest.mark.parametrize("workers", [0, -2, 1.5, True])
    def test_invalid_max_workers(self, workers):
        with pytest.raises(InvalidParameter):
            analysis.GrainClassifier(max_workers=workers)

    def test_unknown_feature(self):
        with pytest.raises(UnknownFeature):
            analysis.GrainClassifier(features=["rms", "mfcc"])

    def test_feature_table(self, grains):
        classifier = analysis.GrainClassifier(features=["rms", "peak_energy"])
        classifier.classify(grains[:2])

        rows = classifier.feature_table(grains[:3])

        assert [row["index"] for row in rows] == [0, 1, 2]
        assert rows[1]["start_sample"] == grains[1].start_sample
        assert rows[0]["rms"] == grains[0].features[Feature.RMS]
        assert rows[2]["rms"] is None
        assert rows[2]["peak_energy"] is None

    def test_tone_plus_noise_values(self, grains):
        analysis.GrainClassifier(features=["spectral_centroid", "spectral_flatness"]).classify(grains)

        for grain in grains:
            # 440 Hz at 44.1 kHz over 2205-point frames sits near bin 22
            assert 0.0 < grain.features[Feature.SPECTRAL_CENTROID] < 1102.0
            assert 0.0 <= grain.features[Feature.SPECTRAL_FLATNESS] <= 1.0
