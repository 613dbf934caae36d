from .configuration import (
    ShapeContextConfig,
    ShotConfig,
    UniqueShapeContextConfig,
    load_config_from_yaml,
)
from .core import DescriptorCloud, DescriptorRecord, PointCloud
from .descriptors import (
    DescriptorEstimator,
    ShapeContext3DEstimator,
    ShotEstimator,
    UniqueShapeContextEstimator,
)
from .helpers import checkpoint

__all__ = [
    "ShotConfig",
    "ShapeContextConfig",
    "UniqueShapeContextConfig",
    "load_config_from_yaml",
    "PointCloud",
    "DescriptorCloud",
    "DescriptorRecord",
    "DescriptorEstimator",
    "ShotEstimator",
    "ShapeContext3DEstimator",
    "UniqueShapeContextEstimator",
    "checkpoint",
]
