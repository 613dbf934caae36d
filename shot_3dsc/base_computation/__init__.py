from .color import color_distance, normalized_cielab, rgb_to_cielab
from .histograms import (
    N_VOLUMES,
    ShapeContextGrid,
    accumulate_shape_context,
    accumulate_shot_channel,
    compute_shot_spatial_weights,
    normalize_histogram,
    shot_histogram_length,
)
from .local_rf import ZERO_FRAME, compute_local_rf, is_zero_frame

__all__ = [
    "rgb_to_cielab",
    "normalized_cielab",
    "color_distance",
    "N_VOLUMES",
    "shot_histogram_length",
    "compute_shot_spatial_weights",
    "accumulate_shot_channel",
    "normalize_histogram",
    "ShapeContextGrid",
    "accumulate_shape_context",
    "ZERO_FRAME",
    "compute_local_rf",
    "is_zero_frame",
]
