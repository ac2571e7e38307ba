"""
Lightweight config validation to catch obvious mistakes early.
Run automatically by analyze_grains.py after loading config.

Degenerate-but-defined values (a non-positive grain length, a rolloff
percentile outside [0, 1]) only produce warnings: the analysis core handles
them without error.
"""

import math
import sys
from numbers import Number

from grainlib.logger import get_logger
from grainlib.exceptions import InvalidParameter, UnknownFeature
from grainlib.grain import Feature

logger = get_logger(__name__)

FEATURE_NAMES = {f.value for f in Feature}


def _is_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _is_finite_number(value) -> bool:
    return _is_number(value) and math.isfinite(value)


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_feature(name) -> bool:
    try:
        Feature.from_name(name)
    except UnknownFeature:
        return False
    return True


def _section(config: dict, name: str, errors: list) -> dict:
    section = config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        errors.append(f"{name} must be a mapping, got {type(section).__name__}")
        return {}
    return section


def validate_config(config: dict) -> None:
    if not isinstance(config, dict):
        raise InvalidParameter("Invalid configuration: expected a mapping at the top level")

    errors = []

    # Global sample rate (null keeps the file's own rate)
    sr = _section(config, "global", errors).get("sample_rate")
    if sr is not None:
        if not _is_positive_int(sr):
            errors.append("global.sample_rate must be a positive integer or null")
        elif sr < 8000 or sr > 192000:
            errors.append(f"global.sample_rate ({sr}) outside reasonable range [8000, 192000]")

    analysis = _section(config, "analysis", errors)

    # Grain length
    grain_length = analysis.get("grain_length_ms")
    if grain_length is None:
        errors.append("analysis.grain_length_ms is required")
    elif not _is_finite_number(grain_length):
        errors.append(f"analysis.grain_length_ms ({grain_length}) must be a finite number")
    elif grain_length <= 0:
        logger.warning(f"analysis.grain_length_ms ({grain_length}) is not positive; no grains will be produced")
    elif grain_length > 10000:
        errors.append(f"analysis.grain_length_ms ({grain_length}) is unreasonably large (> 10s)")

    # Features
    features = analysis.get("features")
    if features is not None:
        if not isinstance(features, list):
            errors.append("analysis.features must be a list")
        elif not features:
            errors.append("analysis.features cannot be empty")
        else:
            unknown = [f for f in features if not _is_feature(f)]
            if unknown:
                errors.append(
                    f"analysis.features contains unknown feature(s) {unknown}; "
                    f"known: {sorted(FEATURE_NAMES)}"
                )

    # Rolloff percentile (out-of-range values are clamped by the core)
    percentile = analysis.get("rolloff_percentile")
    if percentile is not None:
        if not _is_finite_number(percentile):
            errors.append(f"analysis.rolloff_percentile ({percentile}) must be a finite number")
        elif not (0 <= percentile <= 1):
            logger.warning(f"analysis.rolloff_percentile ({percentile}) outside [0, 1]; rolloff will be clamped")

    # Worker threads
    workers = analysis.get("max_workers")
    if workers is not None and not _is_positive_int(workers):
        errors.append("analysis.max_workers must be a positive integer or null")

    # Display
    display = _section(config, "display", errors)
    for key in ("width", "height"):
        value = display.get(key)
        if value is not None and not _is_positive_int(value):
            errors.append(f"display.{key} must be a positive integer")
    point_size = display.get("point_size")
    if point_size is not None and (not isinstance(point_size, int) or isinstance(point_size, bool) or point_size < 0):
        errors.append("display.point_size must be a non-negative integer")
    for key in ("x_feature", "y_feature"):
        value = display.get(key)
        if value is not None and not _is_feature(value):
            errors.append(f"display.{key} ({value}) is not a known feature")

    if errors:
        error_msg = "Invalid configuration:\n" + "\n".join([f"- {e}" for e in errors])
        logger.error(error_msg)
        raise InvalidParameter(error_msg, context={"error_count": len(errors)})


if __name__ == "__main__":
    import yaml
    import os
    from grainlib.logger import log_success

    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.yaml"
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            try:
                config = yaml.safe_load(f)
                validate_config(config)
                log_success(logger, "Configuration is valid.")
            except Exception as e:
                logger.error(f"Config validation failed: {e}")
                sys.exit(1)
    else:
        logger.error(f"{config_path} not found. Run analyze_grains.py first to generate it.")
        sys.exit(1)
