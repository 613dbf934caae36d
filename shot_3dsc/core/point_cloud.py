"""
Containers for the inputs and outputs of the descriptor estimators.
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt


def check_indices(indices: npt.ArrayLike, size: int) -> np.ndarray[np.int64]:
    """
    Validates an index set against the size of the cloud it points into.

    Args:
        indices: The indices to check.
        size: The number of elements in the indexed cloud.

    Returns:
        The indices as a 1-D integer array.
    """
    indices = np.asarray(indices)
    if indices.size == 0:
        return np.zeros(0, dtype=np.int64)
    if not np.issubdtype(indices.dtype, np.integer):
        raise TypeError(f"Indices should be integers, got an array of {indices.dtype}")
    indices = indices.ravel().astype(np.int64)
    if (out_of_range := (indices < 0) | (indices >= size)).any():
        raise IndexError(
            f"Index {indices[out_of_range][0]} is out of range for a cloud of {size} points"
        )
    return indices


def unpack_rgb(packed: npt.NDArray[np.integer]) -> np.ndarray[np.uint8]:
    """
    Splits colors packed as 0xRRGGBB (the alpha byte, if any, is ignored) into an (N, 3) array of channels.
    """
    packed = np.asarray(packed).astype(np.uint32)
    return np.stack(
        ((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF), axis=1
    ).astype(np.uint8)


@dataclass
class PointCloud:
    """
    Ordered set of 3D points with optional RGB colors.
    Invalid points are marked with NaN coordinates.
    """

    points: npt.NDArray[np.float64]
    colors: np.ndarray[np.uint8] | None = None
    width: int | None = None
    height: int = 1
    is_dense: bool | None = None

    def __post_init__(self):
        self.points = np.asarray(self.points, dtype=np.float64).reshape(-1, 3)
        if self.colors is not None:
            colors = np.asarray(self.colors)
            self.colors = (
                unpack_rgb(colors) if colors.ndim == 1 else colors.astype(np.uint8)
            )
            if self.colors.shape != self.points.shape:
                raise ValueError(
                    f"Expected {self.points.shape[0]} colors, got an array of shape {self.colors.shape}"
                )
        if self.width is None:
            self.width = self.points.shape[0] // max(self.height, 1)
        if self.width * self.height != self.points.shape[0]:
            raise ValueError(
                f"Organized cloud of size {self.width}x{self.height} cannot hold {self.points.shape[0]} points"
            )
        if self.is_dense is None:
            self.is_dense = bool(np.isfinite(self.points).all())

    def __len__(self) -> int:
        return self.points.shape[0]

    @property
    def has_colors(self) -> bool:
        return self.colors is not None

    @property
    def finite_mask(self) -> np.ndarray[bool]:
        return np.isfinite(self.points).all(axis=1)

    def extract(self, indices: npt.ArrayLike) -> "PointCloud":
        """
        Copies the points found at the given indices into a new unorganized cloud.
        """
        indices = check_indices(indices, len(self))
        return PointCloud(
            points=self.points[indices],
            colors=self.colors[indices] if self.colors is not None else None,
            is_dense=True if self.is_dense else None,
        )


@dataclass
class DescriptorRecord:
    """A single descriptor along with the local reference frame it was computed in."""

    local_rf: np.ndarray[np.float64]
    descriptor: np.ndarray[np.float64]


@dataclass
class DescriptorCloud:
    """
    Output of a descriptor estimator: one local reference frame (9 floats, rows x, y, z) and one descriptor per
    query point, in the order of the queries.
    """

    local_rfs: npt.NDArray[np.float64]
    descriptors: npt.NDArray[np.float64]
    width: int | None = None
    height: int = 1
    is_dense: bool = True

    def __post_init__(self):
        if self.local_rfs.shape[0] != self.descriptors.shape[0]:
            raise ValueError(
                f"Got {self.local_rfs.shape[0]} reference frames for {self.descriptors.shape[0]} descriptors"
            )
        if self.width is None:
            self.width = self.descriptors.shape[0] // max(self.height, 1)

    def __len__(self) -> int:
        return self.descriptors.shape[0]

    def __getitem__(self, idx: int) -> DescriptorRecord:
        return DescriptorRecord(self.local_rfs[idx], self.descriptors[idx])

    def __iter__(self):
        for idx in range(len(self)):
            yield self[idx]

    @property
    def descriptor_length(self) -> int:
        return self.descriptors.shape[1]

    def extract(self, indices: npt.ArrayLike) -> "DescriptorCloud":
        """
        Copies the records found at the given indices into a new unorganized cloud.
        The result is only flagged as dense if the source cloud is, checking every record for NaNs is not worth it.
        """
        indices = check_indices(indices, len(self))
        return DescriptorCloud(
            local_rfs=self.local_rfs[indices].copy(),
            descriptors=self.descriptors[indices].copy(),
            is_dense=self.is_dense,
        )

    def to_matrix(self) -> npt.NDArray[np.float64]:
        """
        Stacks the reference frames and the descriptors as a single (n_records, 9 + descriptor_length) matrix.
        """
        return np.hstack((self.local_rfs, self.descriptors))
