"""
Local reference frame based on the eigendecomposition of the weighted covariance matrix of a neighborhood, following:
Federico Tombari, Samuele Salti, Luigi Di Stefano,
Unique signatures of histograms for local surface description,
European Conference on Computer Vision (ECCV), 2010
"""

import numpy as np
import numpy.typing as npt

ZERO_FRAME = np.zeros((3, 3))


def is_zero_frame(frame: npt.NDArray[np.float64]) -> bool:
    """Whether a frame is the sentinel that signals that no repeatable frame could be defined."""
    return not np.any(frame)


def disambiguate_axis(
    axis: npt.NDArray[np.float64], centered_points: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """
    Flips an eigenvector so that it points towards the majority of the points.
    Points lying on the plane orthogonal to the axis count as positive. On an exact tie the sign returned by the
    eigendecomposition is kept, so the direction of the axis is then arbitrary.
    """
    n_positive = (centered_points @ axis >= 0).sum()
    if 2 * n_positive < centered_points.shape[0]:
        return -axis
    return axis


def compute_local_rf(
    point: npt.NDArray[np.float64],
    neighbors: npt.NDArray[np.float64],
    distances: npt.NDArray[np.float64],
    radius: float,
    min_neighbors: int = 5,
) -> npt.NDArray[np.float64]:
    """
    Extracts a local reference frame from a spherical neighborhood.

    Args:
        point: The point on which the frame is centered.
        neighbors: The points within the neighborhood.
        distances: Euclidean distances between each neighbor and the point.
        radius: The radius of the neighborhood, used to weigh the neighbors (closer ones weigh more).
        min_neighbors: Minimum number of neighbors (the point itself excluded) below which no frame is defined.

    Returns:
        The frame as a (3, 3) array whose rows are the x, y and z axes, or an array of zeros when the neighborhood is
        too small or degenerate. The y axis is z x x, so the frame is right-handed whatever sign a tie leaves on
        the x or z axis.
    """
    valid = distances > 0
    if valid.sum() < min_neighbors:
        return ZERO_FRAME.copy()

    centered_points = neighbors[valid] - point
    weights = radius - distances[valid]
    if (weights_sum := weights.sum()) <= 0:
        return ZERO_FRAME.copy()

    # EVD of the weighted covariance matrix
    weighted_cov_matrix = (
        centered_points.T @ (centered_points * weights[:, None]) / weights_sum
    )
    if not np.isfinite(weighted_cov_matrix).all():
        return ZERO_FRAME.copy()
    eigenvalues, eigenvectors = np.linalg.eigh(weighted_cov_matrix)
    if not np.isfinite(eigenvalues).all():
        return ZERO_FRAME.copy()

    # largest eigenvalue for the x axis, smallest one for the z axis
    x_axis = disambiguate_axis(eigenvectors[:, 2], centered_points)
    z_axis = disambiguate_axis(eigenvectors[:, 0], centered_points)

    return np.vstack((x_axis, np.cross(z_axis, x_axis), z_axis))
