from .base import DescriptorEstimator, SurfaceNormals
from .parallelization import ParallelDriver
from .shape_context import ShapeContext3DEstimator, get_reference_direction
from .shot import ShotEstimator
from .unique_shape_context import UniqueShapeContextEstimator

__all__ = [
    "DescriptorEstimator",
    "SurfaceNormals",
    "ParallelDriver",
    "ShotEstimator",
    "ShapeContext3DEstimator",
    "get_reference_direction",
    "UniqueShapeContextEstimator",
]
