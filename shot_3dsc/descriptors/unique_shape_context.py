"""
Implementation of the unique shape context based on:
Federico Tombari, Samuele Salti, Luigi Di Stefano,
Unique shape context for 3D data description,
ACM Workshop on 3D Object Retrieval (3DOR), 2010
"""

import numpy as np
import numpy.typing as npt

from shot_3dsc.base_computation import (
    ShapeContextGrid,
    accumulate_shape_context,
    compute_local_rf,
    is_zero_frame,
)
from shot_3dsc.configuration import UniqueShapeContextConfig
from shot_3dsc.core import Selection

from .base import DescriptorEstimator, SurfaceNormals


class UniqueShapeContextEstimator(DescriptorEstimator):
    """
    Shape context oriented by a repeatable local reference frame: the azimuth is measured from its x axis and the
    elevation from its z axis. Normals are not needed.
    """

    name = "USC"
    requires_normals = False

    def __init__(self, config: UniqueShapeContextConfig) -> None:
        super().__init__(config)
        self.config: UniqueShapeContextConfig = config
        self.grid = ShapeContextGrid.build(
            radius=config.radius,
            minimal_radius=config.minimal_radius,
            azimuth_bins=config.azimuth_bins,
            elevation_bins=config.elevation_bins,
            radius_bins=config.radius_bins,
        )

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
        normals: SurfaceNormals | None,
        densities: np.ndarray[np.int64],
        query_idx: int,
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        query_point = selection.query_points[query_idx]

        lrf_neighbors_idx, lrf_sq_distances = selection.search.query(
            query_point, self.config.local_radius
        )
        local_rf = compute_local_rf(
            query_point,
            selection.surface.points[lrf_neighbors_idx],
            np.sqrt(lrf_sq_distances),
            self.config.local_radius,
            self.config.min_lrf_neighbors,
        )
        if is_zero_frame(local_rf):
            return local_rf, np.zeros(self.descriptor_length)

        neighbors_idx, sq_distances = selection.search.query(
            query_point, self.config.radius
        )
        return local_rf, accumulate_shape_context(
            self.grid,
            selection.surface.points[neighbors_idx] - query_point,
            np.sqrt(sq_distances),
            densities[neighbors_idx],
            local_rf[0],
            local_rf[2],
        )
