"""
Histogram machinery shared by the descriptors.

SHOT splits the spherical support into 32 volumes (8 azimuth sectors, 2 elevation sectors, 2 radial husks) and
accumulates in each of them a histogram of the cosine between normals (or of a color distance). Every vote is spread
by quadrilinear interpolation over the neighboring bin of the histogram and the neighboring volumes in the three
spatial directions.

Shape contexts use a grid of azimuth x elevation x log-spaced radius bins. Each neighbor votes for a single bin,
without interpolation, with a weight that compensates for the bin volume and the local point density.
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

N_AZIMUTH_SECTORS, N_ELEVATION_SECTORS, N_RADIAL_SECTORS = 8, 2, 2
N_VOLUMES = N_AZIMUTH_SECTORS * N_ELEVATION_SECTORS * N_RADIAL_SECTORS

# center of the first azimuth sector and span of a sector
AZIMUTH_SECTOR_START = -np.pi * 7 / 8
AZIMUTH_SECTOR_SPAN = np.pi / 4


def shot_histogram_length(n_bins: int) -> int:
    """Number of values needed to store one channel of SHOT (one extra bin per volume)."""
    return N_VOLUMES * (n_bins + 1)


def get_azimuth_idx(
    x: float | np.ndarray[np.float64], y: float | np.ndarray[np.float64]
) -> int | np.ndarray[np.int32]:
    """
    Finds the bin index of the azimuth of a point in a division in 8 bins.
    Bins are indexed counterclockwise, and the first bin is between -pi and -3 * pi / 4.
    """
    a = (y > 0) | ((y == 0) & (x < 0))
    return (
        4 * a  # top or bottom half
        + 2 * np.logical_xor((x > 0) | ((x == 0) & (y > 0)), a)  # left or right
        # half of each corner
        + np.where(
            (x * y > 0) | (x == 0),
            np.abs(x) < np.abs(y),
            np.abs(x) > np.abs(y),
        )
    )


@dataclass
class ShotSpatialWeights:
    """
    Spatial part of the quadrilinear interpolation of a neighborhood, shared by the shape and the color channels.

    Attributes:
        volume_idx: (n,) index of the volume each neighbor falls in.
        self_weight: (n,) weight of each neighbor that stays in its own volume.
        adjacent_volume_idx: (n, 3) radial, elevation and azimuth neighbor volumes.
        adjacent_weight: (n, 3) weight given to each of these neighbor volumes.
    """

    volume_idx: np.ndarray[np.int64]
    self_weight: npt.NDArray[np.float64]
    adjacent_volume_idx: np.ndarray[np.int64]
    adjacent_weight: npt.NDArray[np.float64]


def interpolate_on_adjacent_husks(
    distances: npt.NDArray[np.float64], radius: float
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Interpolates on the adjacent husks, centered around radius / 4 and 3 * radius / 4.

    Returns:
        current_husk: weight kept by the husk of each point.
        adjacent_husk: weight given to the other husk. Equal to 0 for points beyond the center of their husk.
    """
    outer = distances > radius / 2
    radius_distance = np.where(
        outer,
        (distances - radius * 3 / 4) / (radius / 2),
        (distances - radius / 4) / (radius / 2),
    )
    adjacent_husk = np.where(
        outer,
        np.where(distances > radius * 3 / 4, 0.0, -radius_distance),
        np.where(distances < radius / 4, 0.0, radius_distance),
    )
    return 1 - np.abs(radius_distance), adjacent_husk


def interpolate_vertical_volumes(
    inclination: npt.NDArray[np.float64], z: npt.NDArray[np.float64]
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], np.ndarray[bool]]:
    """
    Interpolates on the adjacent vertical volumes, centered around pi / 4 and 3 * pi / 4.

    Returns:
        current_volume: weight kept by the vertical volume of each point.
        adjacent_volume: weight given to the other vertical volume.
        lower: whether each point lies in the lower volume.
    """
    lower = (inclination > np.pi / 2) | (
        (np.abs(inclination - np.pi / 2) < 1e-30) & (z <= 0)
    )
    inclination_distance = np.where(
        lower,
        (inclination - np.pi * 3 / 4) / (np.pi / 2),
        (inclination - np.pi / 4) / (np.pi / 2),
    )
    adjacent_volume = np.where(
        lower,
        np.where(inclination > np.pi * 3 / 4, 0.0, -inclination_distance),
        np.where(inclination < np.pi / 4, 0.0, inclination_distance),
    )
    return 1 - np.abs(inclination_distance), adjacent_volume, lower


def compute_shot_spatial_weights(
    local_coordinates: npt.NDArray[np.float64],
    distances: npt.NDArray[np.float64],
    radius: float,
) -> ShotSpatialWeights:
    """
    Locates each neighbor in the SHOT volumes and computes its spatial interpolation weights.

    Args:
        local_coordinates: (n, 3) neighbors expressed in the local reference frame, centered on the query point.
        distances: (n,) distances between the neighbors and the query point, all strictly positive.
        radius: The radius of the support.
    """
    local_coordinates = np.where(
        np.abs(local_coordinates) < 1e-30, 0.0, local_coordinates
    )
    x, y, z = local_coordinates[:, 0], local_coordinates[:, 1], local_coordinates[:, 2]

    azimuth_idx = get_azimuth_idx(x, y).astype(np.int64)
    # the two arrays below have to be cast as ints, otherwise they will be treated as masks
    radial_idx = (distances > radius / 2).astype(np.int64)
    elevation_idx = (z > 0).astype(np.int64)
    volume_idx = 4 * azimuth_idx + 2 * radial_idx + elevation_idx

    # interpolation on the adjacent husks
    current_husk, adjacent_husk = interpolate_on_adjacent_husks(distances, radius)
    husk_idx = np.where(radial_idx == 1, volume_idx - 2, volume_idx + 2)

    # interpolation between adjacent vertical volumes
    inclination = np.arccos(np.clip(z / distances, -1.0, 1.0))
    current_vertical, adjacent_vertical, lower = interpolate_vertical_volumes(
        inclination, z
    )
    vertical_idx = np.where(lower, volume_idx + 1, volume_idx - 1)

    # interpolation between adjacent horizontal volumes, undefined for points on the z axis
    has_azimuth = (x != 0) | (y != 0)
    azimuth_distance = np.clip(
        (
            np.arctan2(y, x)
            - (AZIMUTH_SECTOR_START + AZIMUTH_SECTOR_SPAN * azimuth_idx)
        )
        / AZIMUTH_SECTOR_SPAN,
        -0.5,
        0.5,
    )
    horizontal_idx = np.where(
        azimuth_distance > 0,
        (volume_idx + 4) % N_VOLUMES,
        (volume_idx - 4 + N_VOLUMES) % N_VOLUMES,
    )
    current_horizontal = np.where(has_azimuth, 1 - np.abs(azimuth_distance), 0.0)
    adjacent_horizontal = np.where(has_azimuth, np.abs(azimuth_distance), 0.0)

    return ShotSpatialWeights(
        volume_idx=volume_idx,
        self_weight=current_husk + current_vertical + current_horizontal,
        adjacent_volume_idx=np.stack((husk_idx, vertical_idx, horizontal_idx), axis=1),
        adjacent_weight=np.stack(
            (adjacent_husk, adjacent_vertical, adjacent_horizontal), axis=1
        ),
    )


def accumulate_shot_channel(
    histogram: npt.NDArray[np.float64],
    spatial_weights: ShotSpatialWeights,
    bin_positions: npt.NDArray[np.float64],
    n_bins: int,
) -> None:
    """
    Accumulates the votes of a neighborhood in one channel of SHOT.

    Args:
        histogram: The (32 * (n_bins + 1),) channel, updated in place.
        spatial_weights: The spatial interpolation weights of the neighbors.
        bin_positions: (n,) continuous position of each neighbor in the histogram, between 0 and n_bins.
            Neighbors with a NaN position are skipped.
        n_bins: Number of bins in the histogram of each volume.
    """
    valid = np.isfinite(bin_positions)
    bin_positions = bin_positions[valid]
    volume_idx = spatial_weights.volume_idx[valid]
    stride = n_bins + 1

    step_idx = np.floor(bin_positions + 0.5).astype(np.int64)
    delta = bin_positions - step_idx  # normalized distance with the neighbor bin
    adjacent_step_idx = np.where(
        delta > 0, (step_idx + 1) % n_bins, (step_idx - 1 + n_bins) % n_bins
    )

    np.add.at(histogram, volume_idx * stride + adjacent_step_idx, np.abs(delta))
    np.add.at(
        histogram,
        (spatial_weights.adjacent_volume_idx[valid] * stride + step_idx[:, None]).ravel(),
        spatial_weights.adjacent_weight[valid].ravel(),
    )
    np.add.at(
        histogram,
        volume_idx * stride + step_idx,
        (1 - np.abs(delta)) + spatial_weights.self_weight[valid],
    )


def normalize_histogram(histogram: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Normalizes a histogram to Euclidean norm 1, leaving empty histograms as they are."""
    if (histogram_norm := np.linalg.norm(histogram)) > 0:
        return histogram / histogram_norm
    return histogram


@dataclass(frozen=True)
class ShapeContextGrid:
    """
    Bins of a shape context: azimuth x elevation x radius, flattened with the azimuth as the slowest index.
    Angles are stored in degrees.
    """

    radius_edges: npt.NDArray[np.float64]
    elevation_edges: npt.NDArray[np.float64]
    azimuth_edges: npt.NDArray[np.float64]
    bin_weights: npt.NDArray[np.float64]

    @classmethod
    def build(
        cls,
        radius: float,
        minimal_radius: float,
        azimuth_bins: int,
        elevation_bins: int,
        radius_bins: int,
    ) -> "ShapeContextGrid":
        """
        Computes the bin edges and the inverse cube root of the volume of each bin.

        Args:
            radius: The radius of the support.
            minimal_radius: The radius of the first radial edge, the other edges are log-spaced up to radius.
            azimuth_bins: Number of divisions of the azimuth (360 degrees).
            elevation_bins: Number of divisions of the elevation (180 degrees).
            radius_bins: Number of radial divisions.
        """
        radius_edges = np.exp(
            np.log(minimal_radius)
            + np.arange(radius_bins + 1) / radius_bins * np.log(radius / minimal_radius)
        )
        elevation_interval = 180.0 / elevation_bins
        azimuth_interval = 360.0 / azimuth_bins
        elevation_edges = np.arange(elevation_bins + 1) * elevation_interval
        azimuth_edges = np.arange(azimuth_bins + 1) * azimuth_interval

        integral_radius = (radius_edges[1:] ** 3 - radius_edges[:-1] ** 3) / 3
        integral_elevation = np.cos(np.deg2rad(elevation_edges[:-1])) - np.cos(
            np.deg2rad(elevation_edges[1:])
        )
        volumes = (
            integral_elevation[:, None]
            * integral_radius[None, :]
            * np.deg2rad(azimuth_interval)
        )
        bin_weights = np.broadcast_to(
            1 / np.cbrt(volumes), (azimuth_bins, elevation_bins, radius_bins)
        ).ravel()

        return cls(radius_edges, elevation_edges, azimuth_edges, bin_weights)

    @property
    def shape(self) -> tuple[int, int, int]:
        return (
            self.azimuth_edges.shape[0] - 1,
            self.elevation_edges.shape[0] - 1,
            self.radius_edges.shape[0] - 1,
        )

    @property
    def n_bins(self) -> int:
        return self.bin_weights.shape[0]

    def bin_indices(
        self,
        distances: npt.NDArray[np.float64],
        elevations: npt.NDArray[np.float64],
        azimuths: npt.NDArray[np.float64],
    ) -> np.ndarray[np.int64]:
        """
        Finds the flat bin index of points given in spherical coordinates (angles in degrees).
        Each value goes to the first bin whose upper edge is greater than or equal to it. Values beyond the last
        edge are kept in the last bin.
        """
        n_azimuth, n_elevation, n_radius = self.shape
        radius_idx = np.minimum(
            np.searchsorted(self.radius_edges[1:], distances, side="left"),
            n_radius - 1,
        )
        elevation_idx = np.minimum(
            np.searchsorted(self.elevation_edges[1:], elevations, side="left"),
            n_elevation - 1,
        )
        azimuth_idx = np.minimum(
            np.searchsorted(self.azimuth_edges[1:], azimuths, side="left"),
            n_azimuth - 1,
        )
        return (azimuth_idx * n_elevation + elevation_idx) * n_radius + radius_idx


def spherical_angles(
    centered_points: npt.NDArray[np.float64],
    distances: npt.NDArray[np.float64],
    x_axis: npt.NDArray[np.float64],
    normal: npt.NDArray[np.float64],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """
    Computes the elevation and the azimuth of points around an oriented point.

    Args:
        centered_points: (n, 3) points relative to the center.
        distances: (n,) norms of the centered points, all strictly positive.
        x_axis: The reference direction of the azimuth, orthogonal to the normal.
        normal: The direction of null elevation.

    Returns:
        elevations: angles with the normal, in [0, 180] degrees.
        azimuths: angles of the projections on the tangent plane with the x axis, in [0, 360] degrees.
    """
    # projection on the tangent plane
    projections = centered_points - (centered_points @ normal)[:, None] * normal
    projection_norms = np.linalg.norm(projections, axis=1)
    projections = np.divide(
        projections,
        projection_norms[:, None],
        out=np.zeros_like(projections),
        where=projection_norms[:, None] > 0,
    )
    cross = np.cross(x_axis, projections)
    azimuths = np.rad2deg(np.arctan2(np.linalg.norm(cross, axis=1), projections @ x_axis))
    azimuths = np.where(cross @ normal < 0, 360.0 - azimuths, azimuths)

    elevations = np.rad2deg(
        np.arccos(np.clip((centered_points @ normal) / distances, -1.0, 1.0))
    )
    return elevations, azimuths


def accumulate_shape_context(
    grid: ShapeContextGrid,
    centered_points: npt.NDArray[np.float64],
    distances: npt.NDArray[np.float64],
    densities: np.ndarray[np.int64],
    x_axis: npt.NDArray[np.float64],
    normal: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """
    Computes a shape context histogram.

    Args:
        grid: The bins of the histogram.
        centered_points: (n, 3) neighbors relative to the query point.
        distances: (n,) distances between the neighbors and the query point.
        densities: (n,) number of points around each neighbor, used to compensate for the sampling density.
        x_axis: The reference direction of the azimuth.
        normal: The direction of null elevation.

    Returns:
        The histogram, with a zero value for bins that did not receive any vote.
    """
    histogram = np.zeros(grid.n_bins)
    # the query point itself and neighbors with no measurable density do not vote
    valid = (distances > 0) & (densities > 0)
    if not valid.any():
        return histogram

    centered_points, distances = centered_points[valid], distances[valid]
    elevations, azimuths = spherical_angles(centered_points, distances, x_axis, normal)
    bin_idx = grid.bin_indices(distances, elevations, azimuths)
    np.add.at(histogram, bin_idx, grid.bin_weights[bin_idx] / densities[valid])

    return histogram
