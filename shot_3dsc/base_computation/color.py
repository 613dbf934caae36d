"""
Color conversions used by the color channel of SHOT.
"""

import numpy as np
import numpy.typing as npt

# sRGB (D65) to XYZ
RGB_TO_XYZ = np.array(
    [
        [0.4124, 0.3576, 0.1805],
        [0.2126, 0.7152, 0.0722],
        [0.0193, 0.1192, 0.9505],
    ]
)
D65_WHITE_POINT = np.array([0.95047, 1.0, 1.08883])


def srgb_to_linear(rgb: np.ndarray[np.uint8]) -> npt.NDArray[np.float64]:
    """Removes the sRGB gamma from 8-bit channels."""
    f = rgb / 255.0
    return np.where(f > 0.04045, ((f + 0.055) / 1.055) ** 2.4, f / 12.92)


def rgb_to_cielab(rgb: np.ndarray[np.uint8]) -> npt.NDArray[np.float64]:
    """
    Converts an (N, 3) array of 8-bit RGB colors into CIELab.

    Returns:
        An (N, 3) array with L in [0, 100] and a, b roughly in [-120, 120]. Values are not clipped, the rounding of
        the conversion matrix leaves white slightly off the achromatic axis.
    """
    xyz = (srgb_to_linear(np.asarray(rgb, dtype=np.float64)) @ RGB_TO_XYZ.T) / D65_WHITE_POINT
    f = np.where(xyz > 0.008856, np.cbrt(xyz), 7.787 * xyz + 16.0 / 116.0)

    lightness = 116.0 * f[:, 1] - 16.0
    a = 500.0 * (f[:, 0] - f[:, 1])
    b = 200.0 * (f[:, 1] - f[:, 2])
    return np.stack((lightness, a, b), axis=1)


def normalized_cielab(rgb: np.ndarray[np.uint8]) -> npt.NDArray[np.float64]:
    """CIELab scaled so that L is in [0, 1] and a, b are in [-1, 1]."""
    return rgb_to_cielab(rgb) / np.array([100.0, 120.0, 120.0])


def color_distance(
    reference_lab: npt.NDArray[np.float64], lab: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """
    Distance between one normalized CIELab color and an (N, 3) array of normalized CIELab colors, in [0, 1].
    The lightness weighs as much as both chroma channels together.
    """
    delta = np.abs(lab - reference_lab)
    return np.clip((delta[:, 0] + (delta[:, 1] + delta[:, 2]) / 2) / 3, 0.0, 1.0)
