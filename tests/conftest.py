import numpy as np
import pytest

from shot_3dsc import PointCloud


def make_paraboloid(
    n_points: int = 400, noise: float = 2e-4, seed: int = 0
) -> tuple[np.ndarray, np.ndarray]:
    """
    Samples a patch of the paraboloid z = 4 x^2 + 1.5 y^2 (two distinct curvatures, so that local frames are well
    defined) along with its analytic normals.
    """
    rng = np.random.default_rng(seed)
    xy = rng.uniform(-0.05, 0.05, size=(n_points, 2))
    points = np.column_stack((xy, 4 * xy[:, 0] ** 2 + 1.5 * xy[:, 1] ** 2))
    normals = np.column_stack((-8 * xy[:, 0], -3 * xy[:, 1], np.ones(n_points)))
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)
    return points + rng.normal(scale=noise, size=points.shape), normals


def packed_colors(n_points: int) -> np.ndarray:
    return np.array(
        [
            ((i % 255) << 16) + (((255 - i) % 255) << 8) + ((i * 37) % 255)
            for i in range(n_points)
        ],
        dtype=np.uint32,
    )


@pytest.fixture
def paraboloid() -> tuple[PointCloud, np.ndarray]:
    points, normals = make_paraboloid()
    return PointCloud(points), normals


@pytest.fixture
def colored_paraboloid() -> tuple[PointCloud, np.ndarray]:
    points, normals = make_paraboloid()
    return PointCloud(points, colors=packed_colors(points.shape[0])), normals


@pytest.fixture
def small_paraboloid() -> tuple[PointCloud, np.ndarray]:
    points, normals = make_paraboloid(n_points=50, seed=1)
    return PointCloud(points), normals


@pytest.fixture
def query_indices(paraboloid) -> np.ndarray:
    cloud, _ = paraboloid
    return np.arange(0, len(cloud), 3)


@pytest.fixture
def known_neighborhood() -> tuple[PointCloud, np.ndarray]:
    """
    A query point at the origin (index 0) surrounded by eight neighbors whose weighted covariance is diagonal with
    decreasing variances along x, y and z, and whose majority lies towards +x and +z: the local frame is the
    identity. Four outer neighbors sit at (0.02, +-0.01, +-0.004), four inner ones at (+-0.004, +-0.003, 0.006).
    Every neighbor normal has a cosine of 0.36 with the z axis.
    """
    points = np.array(
        [
            [0.0, 0.0, 0.0],
            [0.02, 0.01, 0.004],
            [0.02, 0.01, -0.004],
            [0.02, -0.01, 0.004],
            [0.02, -0.01, -0.004],
            [0.004, 0.003, 0.006],
            [0.004, -0.003, 0.006],
            [-0.004, 0.003, 0.006],
            [-0.004, -0.003, 0.006],
        ]
    )
    normals = np.tile([np.sqrt(1 - 0.36**2), 0.0, 0.36], (points.shape[0], 1))
    normals[0] = [0.0, 0.0, 1.0]
    return PointCloud(points), normals


@pytest.fixture
def known_neighborhood_shape_context():
    """
    Shape context of the query point of the known neighborhood on the default 4 x 4 x 4 grid with a radius of 0.04
    and a density radius of 0.0065, so that the inner neighbors count each other in pairs. The azimuth is measured
    from a direction of the horizontal plane given by its angle (in degrees) with the x axis.
    """
    radius_edges = 0.004 * 10 ** (np.arange(5) / 4)
    radius_integrals = (radius_edges[1:] ** 3 - radius_edges[:-1] ** 3) / 3
    elevation_edges = np.deg2rad(np.arange(5) * 45.0)
    elevation_integrals = np.cos(elevation_edges[:-1]) - np.cos(elevation_edges[1:])

    # (angle in the horizontal plane, elevation bin, radius bin, density)
    outer_angle = np.rad2deg(np.arctan2(0.01, 0.02))
    neighbors = [
        (outer_angle, 1, 3, 1),
        (outer_angle, 2, 3, 1),
        (-outer_angle, 1, 3, 1),
        (-outer_angle, 2, 3, 1),
    ] + [
        (np.rad2deg(np.arctan2(y, x)), 0, 1, 2)
        for x, y in ((0.004, 0.003), (0.004, -0.003), (-0.004, 0.003), (-0.004, -0.003))
    ]

    def shape_context(x_angle: float) -> np.ndarray:
        histogram = np.zeros(64)
        for angle, elevation_idx, radius_idx, density in neighbors:
            azimuth_idx = int(((angle - x_angle) % 360) // 90)
            volume = (
                elevation_integrals[elevation_idx] * radius_integrals[radius_idx] * np.pi / 2
            )
            histogram[(azimuth_idx * 4 + elevation_idx) * 4 + radius_idx] += (
                1 / np.cbrt(volume) / density
            )
        return histogram

    return shape_context
