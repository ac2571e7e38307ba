#!/usr/bin/env python3
"""
analyze_grains.py: Segment audio files into grains and describe each grain.

Usage:
  python analyze_grains.py source_audio/snare.wav
  python analyze_grains.py source_audio/ --grain-length-ms 50 --table
  python analyze_grains.py spring.wav --features rms,spectral_centroid --workers 4
"""

import argparse
import os
import sys
from typing import List, Optional

import numpy as np
import yaml

from grainlib import io_utils, layout, segmenter
from grainlib.analysis import GrainClassifier
from grainlib.exceptions import AudioError, InvalidParameter
from grainlib.features import DEFAULT_ROLLOFF_PERCENTILE
from grainlib.grain import Feature, Grain
from grainlib.logger import configure_root_logger, get_logger, log_success, set_level
from validate_config import validate_config

logger = get_logger(__name__)


DEFAULT_CONFIG_YAML = """# Global audio settings
global:
  sample_rate: null             # null = keep each file's rate; integer = resample on load (Hz)

# Grain segmentation and feature analysis
analysis:
  grain_length_ms: 100          # Grain duration; <= 0 produces no grains
  features:                     # Descriptors computed for every grain
    - rms
    - peak_energy
    - zero_crossing_rate
    - spectral_centroid
    - spectral_flatness
    - spectral_crest
    - spectral_rolloff
    - spectral_kurtosis
  rolloff_percentile: 0.85      # Energy fraction for spectral_rolloff (clamped to [0, 1])
  max_workers: null             # Analysis threads; null = executor default, 1 = inline

# 2-D placement of grains (two features as x/y axes)
display:
  width: 800                    # Drawing area in pixels
  height: 600
  point_size: 20                # Points are kept fully inside the area
  x_feature: rms
  y_feature: spectral_centroid
"""


def load_or_create_config(config_path: str = "config.yaml") -> dict:
    """
    Load config from file or create default if missing.

    Args:
        config_path: Path to config.yaml

    Returns:
        Configuration dictionary

    Raises:
        InvalidParameter: If the file is not valid YAML or not a mapping
    """
    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise InvalidParameter(
                    "Config file is not valid YAML",
                    context={"config_path": config_path, "error": str(e)},
                ) from e
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise InvalidParameter(
                "Config file must contain a mapping at the top level",
                context={"config_path": config_path, "found": type(config).__name__},
            )
        logger.info(f"Loaded config from {config_path}")
        return config

    logger.info(f"Config not found, creating default at {config_path}")
    with open(config_path, 'w') as f:
        f.write(DEFAULT_CONFIG_YAML)
    return yaml.safe_load(DEFAULT_CONFIG_YAML)


def _section(config: dict, name: str) -> dict:
    """Return config[name], creating it when missing or null."""
    section = config.get(name)
    if section is None:
        section = config[name] = {}
    if not isinstance(section, dict):
        raise InvalidParameter(f"Config section '{name}' must be a mapping", context={"found": type(section).__name__})
    return section


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Apply command line overrides on top of the loaded config."""
    analysis = _section(config, "analysis")
    if args.grain_length_ms is not None:
        analysis["grain_length_ms"] = args.grain_length_ms
    if args.features:
        analysis["features"] = [name.strip() for name in args.features.split(",") if name.strip()]
    if args.percentile is not None:
        analysis["rolloff_percentile"] = args.percentile
    if args.workers is not None:
        analysis["max_workers"] = args.workers
    if args.sample_rate is not None:
        _section(config, "global")["sample_rate"] = args.sample_rate
    return config


def collect_sources(paths: List[str]) -> List[str]:
    """Expand directories into the audio files they contain."""
    sources = []
    for path in paths:
        if os.path.isdir(path):
            found = io_utils.discover_audio_files(path)
            if not found:
                logger.warning(f"No audio files found in {path}")
            sources.extend(found)
        else:
            sources.append(path)
    return sources


def build_classifier(config: dict) -> GrainClassifier:
    analysis = config.get("analysis") or {}
    percentile = analysis.get("rolloff_percentile")
    return GrainClassifier(
        features=analysis.get("features"),
        rolloff_percentile=DEFAULT_ROLLOFF_PERCENTILE if percentile is None else percentile,
        max_workers=analysis.get("max_workers"),
    )


def report_grains(grains: List[Grain], classifier: GrainClassifier, config: dict, show_table: bool) -> None:
    """Log the per-grain table (optional) and a per-feature summary."""
    display = config.get("display") or {}
    x_feature = Feature.from_name(display.get("x_feature") or "rms")
    y_feature = Feature.from_name(display.get("y_feature") or "spectral_centroid")

    positions = None
    if x_feature in classifier.features and y_feature in classifier.features:
        positions = layout.grain_positions(
            grains,
            x_feature,
            y_feature,
            width=display.get("width") or 800,
            height=display.get("height") or 600,
            point_size=20 if display.get("point_size") is None else display["point_size"],
        )

    if show_table:
        header = "  ".join(["grain", "start"] + [f.value for f in classifier.features])
        if positions is not None:
            header += f"  xy({x_feature.value},{y_feature.value})"
        logger.info(header)
        for i, row in enumerate(classifier.feature_table(grains)):
            cells = [f"{row['index']:5d}", f"{row['start_sample']:8d}"]
            cells += [f"{row[f.value]:.4f}" for f in classifier.features]
            if positions is not None:
                cells.append(f"({positions[i][0]}, {positions[i][1]})")
            logger.info("  ".join(cells))

    for feature in classifier.features:
        values = np.array([grain.features[feature] for grain in grains])
        logger.info(
            f"  {feature.value:<20s} min={values.min():.4f}  mean={values.mean():.4f}  max={values.max():.4f}"
        )


def analyze_source(filepath: str, config: dict, classifier: GrainClassifier, show_table: bool = False) -> List[Grain]:
    """
    Load, segment and classify one audio file.

    Returns:
        Annotated grains (empty if the grain length produces none)
    """
    sr = (config.get("global") or {}).get("sample_rate")
    grain_length_ms = config["analysis"]["grain_length_ms"]

    signal = io_utils.load_signal(filepath, sr=sr)
    logger.info(
        f"{io_utils.get_filename_stem(filepath)}: {signal.channel_count} channel(s), "
        f"{signal.sample_count} samples @ {signal.sample_rate:g} Hz ({signal.duration_sec:.2f}s)"
    )

    grains = segmenter.create_grains(signal, grain_length_ms)
    if not grains:
        logger.warning(f"No grains produced for grain_length_ms={grain_length_ms}")
        return []

    classifier.classify(grains)
    padded = sum(1 for grain in grains if grain.padding > 0)
    logger.info(
        f"  {len(grains)} grain(s) of {len(grains[0])} samples"
        + (f" ({padded} zero-padded)" if padded else "")
    )
    report_grains(grains, classifier, config, show_table)
    return grains


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Segment audio into grains and compute per-grain features",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Features: {', '.join(f.value for f in Feature)}

Examples:
  python analyze_grains.py snare.wav                      # Defaults from config.yaml
  python analyze_grains.py source_audio/ --table          # Every file, per-grain rows
  python analyze_grains.py spring.wav --grain-length-ms 10 --features rms,spectral_rolloff
        """
    )

    parser.add_argument('sources', nargs='+', help='Audio files or directories to analyse')
    parser.add_argument(
        '--config',
        type=str,
        default='config.yaml',
        help='Path to config.yaml (default: config.yaml)'
    )
    parser.add_argument('--grain-length-ms', type=float, help='Grain duration in milliseconds')
    parser.add_argument('--features', type=str, help='Comma-separated feature names')
    parser.add_argument('--percentile', type=float, help='Spectral rolloff energy fraction')
    parser.add_argument('--workers', type=int, help='Analysis threads (1 = inline)')
    parser.add_argument('--sample-rate', type=int, help='Resample sources to this rate (Hz)')
    parser.add_argument('--table', action='store_true', help='Log one row per grain')
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging verbosity (default: GRAINLIB_LOG_LEVEL or INFO)'
    )

    args = parser.parse_args(argv)

    if args.log_level:
        configure_root_logger(args.log_level)
        set_level(logger, args.log_level)

    try:
        config = apply_overrides(load_or_create_config(args.config), args)
        validate_config(config)
        classifier = build_classifier(config)
    except InvalidParameter as e:
        logger.error(f"Configuration rejected: {e.message}")
        return 1

    sources = collect_sources(args.sources)
    if not sources:
        logger.error("No audio sources to analyse")
        return 1

    failed = 0
    total_grains = 0
    for filepath in sources:
        try:
            grains = analyze_source(filepath, config, classifier, show_table=args.table)
        except (FileNotFoundError, AudioError) as e:
            logger.error(f"Skipping {filepath}: {e}")
            failed += 1
            continue
        total_grains += len(grains)

    if failed:
        logger.error(f"{failed} of {len(sources)} source(s) failed")
        return 1

    log_success(logger, f"Analysed {total_grains} grain(s) from {len(sources)} source(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
