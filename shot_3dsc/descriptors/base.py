"""
Interface shared by every descriptor estimator.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from shot_3dsc.configuration import Config
from shot_3dsc.core import DescriptorCloud, PointCloud, Selection, resolve_selection

from .parallelization import ParallelDriver


@dataclass
class SurfaceNormals:
    """Unit normals of the search surface along with a mask of the usable ones."""

    normals: npt.NDArray[np.float64]
    valid: np.ndarray[bool]

    @classmethod
    def from_array(cls, normals: npt.ArrayLike, surface_size: int) -> "SurfaceNormals":
        normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
        if normals.shape[0] != surface_size:
            raise ValueError(
                f"Expected one normal per point of the search surface ({surface_size}), got {normals.shape[0]}"
            )
        norms = np.linalg.norm(normals, axis=1)
        valid = np.isfinite(norms) & (norms > 0)
        unit_normals = np.zeros_like(normals)
        unit_normals[valid] = normals[valid] / norms[valid, None]
        return cls(unit_normals, valid)


class DescriptorEstimator(ABC):
    """
    Computes one local reference frame and one descriptor per query point.

    Subclasses only describe the computation on a single point, the selection of the query points and of the search
    surface as well as the parallel loop are handled here.
    """

    name: str = "descriptor"
    requires_normals: bool = True

    def __init__(self, config: Config) -> None:
        config.validate()
        self.config = config

    @property
    @abstractmethod
    def descriptor_length(self) -> int:
        """Number of values in each descriptor, fixed by the configuration."""
        ...

    def check_inputs(self, selection: Selection, normals: SurfaceNormals | None) -> None:
        """
        Checks that the inputs allow to compute the descriptor, before the parallel loop starts.

        Raises:
            ValueError: If an input is missing.
        """
        ...

    def prepare(self, selection: Selection, normals: SurfaceNormals | None) -> Any:
        """
        Hook called once per call to compute, before the parallel loop, to precompute values shared by every query.
        The result is handed to compute_point, the estimator itself is left untouched.
        """
        return None

    @abstractmethod
    def compute_point(
        self,
        selection: Selection,
        normals: SurfaceNormals | None,
        prepared: Any,
        query_idx: int,
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        """
        Computes the local reference frame and the descriptor of a single query point.

        Args:
            selection: The query points and the search surface.
            normals: The normals of the search surface.
            prepared: The values returned by prepare for this call.
            query_idx: Position of the point among the queries.

        Returns:
            The (3, 3) local reference frame and the descriptor.
        """
        ...

    def compute(
        self,
        cloud: PointCloud,
        normals: npt.ArrayLike | None = None,
        surface: PointCloud | None = None,
        indices: npt.ArrayLike | None = None,
    ) -> DescriptorCloud:
        """
        Computes the descriptors of a point cloud.

        Args:
            cloud: The input cloud.
            normals: The normals of the search surface (of the input cloud when no surface is given).
            surface: The cloud in which neighbors are searched. Leave empty to search in the input cloud.
            indices: Indices of the points of the input cloud to compute descriptors on. Leave empty to use every point.

        Returns:
            One record per query point, in the order of the queries. Invalid query points get NaN records.
        """
        if self.requires_normals and normals is None:
            raise ValueError(f"Normals are required to compute {self.name}")

        selection = resolve_selection(cloud, surface, indices)
        surface_normals = (
            SurfaceNormals.from_array(normals, len(selection.surface))
            if normals is not None
            else None
        )
        self.check_inputs(selection, surface_normals)
        prepared = self.prepare(selection, surface_normals)

        n_queries = selection.n_queries
        local_rfs = np.full((n_queries, 9), np.nan)
        descriptors = np.full((n_queries, self.descriptor_length), np.nan)
        valid_queries = selection.valid_queries
        degenerate = np.zeros(n_queries, dtype=bool)

        def compute_row(query_idx: int) -> None:
            if not valid_queries[query_idx]:
                return
            local_rf, descriptor = self.compute_point(
                selection, surface_normals, prepared, query_idx
            )
            local_rfs[query_idx] = local_rf.ravel()
            descriptors[query_idx] = descriptor
            degenerate[query_idx] = not np.any(descriptor)

        with ParallelDriver(
            self.config.n_threads, self.config.disable_progress_bar
        ) as driver:
            driver.run(compute_row, n_queries, desc=self.name)

        if (n_invalid := n_queries - valid_queries.sum()) > 0:
            logging.debug(f"{n_invalid} query points have invalid coordinates")
        if (n_degenerate := degenerate.sum()) > 0:
            logging.debug(
                f"{n_degenerate} points out of {n_queries} have an empty {self.name} descriptor"
            )

        return DescriptorCloud(
            local_rfs=local_rfs, descriptors=descriptors, is_dense=selection.is_dense
        )
