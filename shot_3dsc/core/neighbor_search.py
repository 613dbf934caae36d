"""
Radius search over a search surface, backed by a KDTree.
"""

import numpy as np
import numpy.typing as npt
from sklearn.neighbors import KDTree


class NeighborSearch:
    """
    Spherical neighborhood queries on a fixed set of points.
    Points with non-finite coordinates are left out of the tree and can never be returned as neighbors.
    """

    def __init__(
        self,
        surface: npt.NDArray[np.float64],
        finite: np.ndarray[bool] | None = None,
        leaf_size: int = 40,
    ) -> None:
        self.surface = surface
        if finite is None:
            finite = np.isfinite(surface).all(axis=1)
        self._tree_to_surface = finite.nonzero()[0]
        self._kdtree = (
            KDTree(surface[finite], leaf_size=leaf_size) if finite.any() else None
        )

    def __len__(self) -> int:
        return self.surface.shape[0]

    def query(
        self, point: npt.NDArray[np.float64], radius: float
    ) -> tuple[np.ndarray[np.int64], npt.NDArray[np.float64]]:
        """
        Finds the surface points within a given radius of a point.

        Args:
            point: The center of the search sphere.
            radius: The radius of the search sphere.

        Returns:
            The indices of the neighbors in the surface and their squared distances to the point, sorted by increasing
            distance (and by increasing index for equal distances).
        """
        if self._kdtree is None or not np.isfinite(point).all():
            return np.zeros(0, dtype=np.int64), np.zeros(0)
        tree_indices = self._kdtree.query_radius(point[None, :], radius)[0]
        indices = self._tree_to_surface[tree_indices]
        sq_distances = ((self.surface[indices] - point) ** 2).sum(axis=1)
        order = np.lexsort((indices, sq_distances))
        return indices[order], sq_distances[order]

    def count(
        self, points: npt.NDArray[np.float64], radius: float
    ) -> np.ndarray[np.int64]:
        """
        Counts the surface points within a given radius of each point, the point itself included if it lies on the
        surface. Non-finite points get a count of zero.
        """
        counts = np.zeros(points.shape[0], dtype=np.int64)
        finite = np.isfinite(points).all(axis=1)
        if self._kdtree is not None and finite.any():
            counts[finite] = self._kdtree.query_radius(
                points[finite], radius, count_only=True
            )
        return counts
