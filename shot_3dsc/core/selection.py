"""
Reconciles the input cloud, the search surface and the index subset into the set of query points and the set of
candidate neighbors of a single computation.

The three following setups are equivalent and yield the same descriptors on the same points:
    - computing on the whole input cloud and extracting the records at some indices afterwards,
    - computing on the points extracted at these indices with the whole cloud as search surface,
    - computing on the whole input cloud restricted to these indices.
"""

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from .neighbor_search import NeighborSearch
from .point_cloud import PointCloud, check_indices


@dataclass
class Selection:
    """Query domain and surface domain of one computation."""

    query_points: npt.NDArray[np.float64]
    query_colors: np.ndarray[np.uint8] | None
    query_indices: np.ndarray[np.int64]
    surface: PointCloud
    search: NeighborSearch
    valid_queries: np.ndarray[bool]

    @property
    def n_queries(self) -> int:
        return self.query_indices.shape[0]

    @property
    def is_dense(self) -> bool:
        return bool(self.valid_queries.all())


def resolve_selection(
    cloud: PointCloud,
    surface: PointCloud | None = None,
    indices: npt.ArrayLike | None = None,
) -> Selection:
    """
    Resolves the query points and the search surface of a computation.

    Args:
        cloud: The input cloud, on which the descriptors are computed.
        surface: The cloud in which neighbors are searched. Leave empty to search in the input cloud.
        indices: Indices of the points of the input cloud to compute descriptors on. Leave empty to use every point.

    Returns:
        The resolved selection.
    """
    query_indices = (
        np.arange(len(cloud), dtype=np.int64)
        if indices is None
        else check_indices(indices, len(cloud))
    )
    surface = surface if surface is not None else cloud
    selection = Selection(
        query_points=cloud.points[query_indices],
        query_colors=cloud.colors[query_indices] if cloud.has_colors else None,
        query_indices=query_indices,
        surface=surface,
        search=NeighborSearch(surface.points, surface.finite_mask),
        valid_queries=cloud.finite_mask[query_indices],
    )
    logging.info(
        f"Computing descriptors on {selection.n_queries} points with a search surface of {len(surface)} points"
    )
    return selection
