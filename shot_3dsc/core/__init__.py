from .neighbor_search import NeighborSearch
from .point_cloud import (
    DescriptorCloud,
    DescriptorRecord,
    PointCloud,
    check_indices,
    unpack_rgb,
)
from .selection import Selection, resolve_selection

__all__ = [
    "NeighborSearch",
    "PointCloud",
    "DescriptorCloud",
    "DescriptorRecord",
    "check_indices",
    "unpack_rgb",
    "Selection",
    "resolve_selection",
]
