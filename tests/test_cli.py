"""
Integration tests for the analyze_grains command line tool.
"""

import sys
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf
import yaml

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import analyze_grains
from grainlib.analysis import GrainClassifier
from grainlib.exceptions import InvalidParameter
from grainlib.grain import Feature


@pytest.fixture
def source(tmp_path):
    """One second of stereo tone plus noise at 22.05 kHz."""
    sr = 22050
    t = np.arange(sr) / sr
    rng = np.random.default_rng(7)
    left = 0.4 * np.sin(2 * np.pi * 330 * t)
    right = 0.1 * rng.standard_normal(sr)
    path = tmp_path / "source.wav"
    sf.write(str(path), np.stack([left, right], axis=1), sr)
    return str(path)


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config.yaml")


class TestMain:

    def test_analyses_file(self, source, config_path):
        assert analyze_grains.main([source, "--config", config_path]) == 0

    def test_creates_default_config(self, source, config_path):
        analyze_grains.main([source, "--config", config_path])

        with open(config_path) as f:
            config = yaml.safe_load(f)
        assert config["analysis"]["grain_length_ms"] == 100

    def test_directory_source_with_table(self, source, tmp_path, config_path):
        args = [str(tmp_path), "--config", config_path, "--table", "--grain-length-ms", "25", "--workers", "2"]
        assert analyze_grains.main(args) == 0

    def test_feature_subset(self, source, config_path):
        args = [source, "--config", config_path, "--features", "rms,spectral_rolloff", "--percentile", "0.5"]
        assert analyze_grains.main(args) == 0

    def test_zero_grain_length_still_succeeds(self, source, config_path):
        assert analyze_grains.main([source, "--config", config_path, "--grain-length-ms", "0"]) == 0

    def test_resample(self, source, config_path):
        assert analyze_grains.main([source, "--config", config_path, "--sample-rate", "16000"]) == 0

    def test_missing_source_fails(self, tmp_path, config_path):
        assert analyze_grains.main([str(tmp_path / "missing.wav"), "--config", config_path]) == 1

    def test_empty_directory_fails(self, tmp_path, config_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert analyze_grains.main([str(empty), "--config", config_path]) == 1

    def test_invalid_override_rejected(self, source, config_path):
        assert analyze_grains.main([source, "--config", config_path, "--workers", "0"]) == 1

    def test_unknown_feature_rejected(self, source, config_path):
        assert analyze_grains.main([source, "--config", config_path, "--features", "rms,mfcc"]) == 1

    @pytest.mark.parametrize("length", ["nan", "inf", "-inf"])
    def test_non_finite_grain_length_rejected(self, source, config_path, length):
        assert analyze_grains.main([source, "--config", config_path, f"--grain-length-ms={length}"]) == 1

    def test_nan_percentile_rejected(self, source, config_path):
        assert analyze_grains.main([source, "--config", config_path, "--percentile", "nan"]) == 1

    def test_config_not_a_mapping(self, source, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        assert analyze_grains.main([source, "--config", str(path)]) == 1

    def test_config_section_not_a_mapping(self, source, tmp_path):
        path = tmp_path / "section.yaml"
        path.write_text("analysis:\n  - 1\n  - 2\n")
        assert analyze_grains.main([source, "--config", str(path), "--grain-length-ms", "20"]) == 1

    def test_config_invalid_yaml(self, source, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("analysis: [unclosed\n")
        assert analyze_grains.main([source, "--config", str(path)]) == 1

    def test_empty_config_file(self, source, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        # No grain_length_ms anywhere
        assert analyze_grains.main([source, "--config", str(path)]) == 1
        assert analyze_grains.main([source, "--config", str(path), "--grain-length-ms", "50"]) == 0

    def test_existing_config_used(self, source, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("analysis:\n  grain_length_ms: 20\n  features: [rms]\n")
        assert analyze_grains.main([source, "--config", str(path), "--table"]) == 0


class TestAnalyzeSource:

    def test_returns_annotated_grains(self, source):
        config = yaml.safe_load(analyze_grains.DEFAULT_CONFIG_YAML)
        classifier = analyze_grains.build_classifier(config)

        grains = analyze_grains.analyze_source(source, config, classifier)

        # 22050 samples, 2205-sample grains
        assert len(grains) == 10
        for grain in grains:
            assert set(grain.features) == set(Feature)

    def test_grain_length_override(self, source):
        config = yaml.safe_load(analyze_grains.DEFAULT_CONFIG_YAML)
        config["analysis"]["grain_length_ms"] = 30
        classifier = GrainClassifier(features=["rms"], max_workers=1)

        grains = analyze_grains.analyze_source(source, config, classifier)

        # 661 samples per grain, last grain padded
        assert len(grains) == 34
        assert grains[-1].padding > 0


class TestOverrides:

    def test_null_sections(self):
        parser_args = type("Args", (), {
            "grain_length_ms": 10.0,
            "features": " rms , spectral_crest ,",
            "percentile": None,
            "workers": None,
            "sample_rate": 8000,
        })()

        config = analyze_grains.apply_overrides({"analysis": None, "global": None}, parser_args)

        assert config["analysis"] == {"grain_length_ms": 10.0, "features": ["rms", "spectral_crest"]}
        assert config["global"]["sample_rate"] == 8000

    def test_non_mapping_section_rejected(self):
        parser_args = type("Args", (), {
            "grain_length_ms": None,
            "features": None,
            "percentile": None,
            "workers": None,
            "sample_rate": None,
        })()

        with pytest.raises(InvalidParameter):
            analyze_grains.apply_overrides({"analysis": "fast"}, parser_args)


class TestLoadOrCreateConfig:

    def test_list_config_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(InvalidParameter) as exc_info:
            analyze_grains.load_or_create_config(str(path))
        assert exc_info.value.context["found"] == "list"

    def test_empty_file_is_empty_mapping(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert analyze_grains.load_or_create_config(str(path)) == {}
