"""
Implementation of the 3D shape context based on:
Andrea Frome, Daniel Huber, Ravi Kolluri, Thomas Bulow, Jitendra Malik,
Recognizing objects in range data using regional point descriptors,
European Conference on Computer Vision (ECCV), 2004
"""

import numpy as np
import numpy.typing as npt

from shot_3dsc.base_computation import (
    ZERO_FRAME,
    ShapeContextGrid,
    accumulate_shape_context,
)
from shot_3dsc.configuration import ShapeContextConfig
from shot_3dsc.core import Selection

from .base import DescriptorEstimator, SurfaceNormals


def get_reference_direction(
    normal: npt.NDArray[np.float64], coefficients: npt.NDArray[np.float64]
) -> npt.NDArray[np.float64]:
    """
    Builds a unit vector orthogonal to the normal out of two coefficients.
    The first two coordinates are set to the coefficients, the coordinate along the largest-indexed non-null
    component of the normal is then solved for orthogonality.
    """
    x_axis = np.array([coefficients[0], coefficients[1], 0.0])
    if normal[2] != 0:
        x_axis[2] = -(normal[0] * x_axis[0] + normal[1] * x_axis[1]) / normal[2]
    elif normal[1] != 0:
        x_axis[1] = -(normal[0] * x_axis[0]) / normal[1]
    elif normal[0] != 0:
        x_axis[0] = -(normal[1] * x_axis[1]) / normal[0]
    return x_axis / np.linalg.norm(x_axis)


class ShapeContext3DEstimator(DescriptorEstimator):
    """
    3D shape context: a histogram of the neighbors over a grid of azimuth x elevation x log-spaced radius bins
    oriented by the normal of the query point.

    The azimuth has no repeatable origin, it is measured from a direction of the tangent plane drawn at random once
    per estimator. The emitted reference frames are therefore always zero.
    """

    name = "3DSC"

    def __init__(self, config: ShapeContextConfig) -> None:
        super().__init__(config)
        self.config: ShapeContextConfig = config
        self.grid = ShapeContextGrid.build(
            radius=config.radius,
            minimal_radius=config.minimal_radius,
            azimuth_bins=config.azimuth_bins,
            elevation_bins=config.elevation_bins,
            radius_bins=config.radius_bins,
        )
        self.coefficients = np.random.default_rng(config.seed).uniform(size=2)

    @property
    def descriptor_length(self) -> int:
        return self.grid.n_bins

    def prepare(
        self, selection: Selection, normals: SurfaceNormals | None
    ) -> np.ndarray[np.int64]:
        """Number of surface points around each point of the surface."""
        return selection.search.count(
            selection.surface.points, self.config.point_density_radius
        )

    def compute_point(
        self,
        selection: Selection,
        normals: SurfaceNormals,
        densities: np.ndarray[np.int64],
        query_idx: int,
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        query_point = selection.query_points[query_idx]
        neighbors_idx, sq_distances = selection.search.query(
            query_point, self.config.radius
        )
        # the normal of the query point is the one of its closest point on the surface
        if neighbors_idx.shape[0] == 0 or not normals.valid[neighbors_idx[0]]:
            return ZERO_FRAME.copy(), np.zeros(self.descriptor_length)

        normal = normals.normals[neighbors_idx[0]]
        return ZERO_FRAME.copy(), accumulate_shape_context(
            self.grid,
            selection.surface.points[neighbors_idx] - query_point,
            np.sqrt(sq_distances),
            densities[neighbors_idx],
            get_reference_direction(normal, self.coefficients),
            normal,
        )
