"""
Place grains on a 2-D plane by two of their features.

A display draws each grain as a point whose x and y come from two chosen
features scaled into pixel space. Feature values are first normalized into
[0, 1] across the grains being shown; coordinates are clamped so a point of
point_size pixels stays inside the drawing area.
"""

from typing import List, Sequence, Tuple

import numpy as np

from .exceptions import InvalidParameter
from .grain import Feature, Grain


def normalize_feature(grains: Sequence[Grain], feature) -> List[float]:
    """
    Min-max normalize one feature across grains into [0, 1].

    If every grain has the same value, all positions are 0.0.

    Raises:
        FeatureNotComputed: If any grain lacks the feature
    """
    feature = Feature.from_name(feature)
    values = np.array([grain.features[feature] for grain in grains], dtype=np.float64)
    if values.size == 0:
        return []
    low, high = np.min(values), np.max(values)
    if high <= low:
        return [0.0] * values.size
    return [float(v) for v in (values - low) / (high - low)]


def _to_pixels(value: float, extent: int, point_size: int) -> int:
    upper = max(extent - point_size, 0)
    return min(max(int(extent * value), 0), upper)


def grain_positions(
    grains: Sequence[Grain],
    x_feature,
    y_feature,
    width: int,
    height: int,
    point_size: int = 20,
    normalize: bool = True,
) -> List[Tuple[int, int]]:
    """
    Pixel coordinates of each grain on a width x height area.

    Args:
        grains: Grains annotated with both features
        x_feature: Feature mapped to the horizontal axis
        y_feature: Feature mapped to the vertical axis
        width: Drawing area width in pixels
        height: Drawing area height in pixels
        point_size: Size of the drawn point; coordinates leave room for it
        normalize: Min-max normalize values first; when False the stored
                   values are assumed to already lie in [0, 1]

    Returns:
        (x, y) per grain, in grain order

    Raises:
        InvalidParameter: If width, height or point_size is not usable
        FeatureNotComputed: If a grain lacks either feature
    """
    if width <= 0 or height <= 0:
        raise InvalidParameter(
            "Display width and height must be positive",
            context={"width": width, "height": height},
        )
    if point_size < 0:
        raise InvalidParameter("point_size must be non-negative", context={"point_size": point_size})

    x_feature = Feature.from_name(x_feature)
    y_feature = Feature.from_name(y_feature)

    if normalize:
        xs = normalize_feature(grains, x_feature)
        ys = normalize_feature(grains, y_feature)
    else:
        xs = [grain.features[x_feature] for grain in grains]
        ys = [grain.features[y_feature] for grain in grains]

    return [
        (_to_pixels(x, width, point_size), _to_pixels(y, height, point_size))
        for x, y in zip(xs, ys)
    ]
