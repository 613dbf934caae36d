"""
Classes that can contain the configuration of every descriptor estimator.
"""

import json
import warnings
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, fields
from typing import Any, TypedDict

import yaml


@dataclass
class Config(ABC):
    """Base class that describes the structure of every config class and implements a type casting behavior."""

    def __post_init__(self):
        for field in fields(self):
            value = getattr(self, field.name)
            try:
                if not isinstance(value, field.type):
                    warnings.warn(
                        f"Expected {field.name} to be {field.type}, got {repr(value)} of type {type(value)}"
                    )
                    setattr(self, field.name, field.type(value))  # recasting the value
            except TypeError:
                ...

    def __repr__(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @abstractmethod
    def help_message(self) -> str:
        """
        Creates a help message describing the behavior of the method with the set of parameters specified.

        Returns:
            The help message.
        """
        ...

    @abstractmethod
    def validate(self) -> None:
        """
        Checks that the parameters are consistent with one another.

        Raises:
            ValueError: If a parameter is missing or out of its domain.
        """
        ...


def check_radius(name: str, value: float | None) -> None:
    if value is None or not value > 0:
        raise ValueError(f"{name} should be set to a positive value, got {value}")


def check_bins(name: str, value: int) -> None:
    if value < 1:
        raise ValueError(f"{name} should be at least 1, got {value}")


@dataclass
class ShotConfig(Config):
    """Parameters of SHOT, the histogram of normal orientations (and optionally of colors)."""

    radius: float | None = None
    shape_bins: int = 10
    color_bins: int = 30
    describe_shape: bool = True
    describe_color: bool = False
    min_lrf_neighbors: int = 5
    n_threads: int = 0
    disable_progress_bar: bool = True

    def help_message(self) -> str:
        channels = " and ".join(
            channel
            for channel, enabled in (
                (f"shape ({self.shape_bins} bins)", self.describe_shape),
                (f"color ({self.color_bins} bins)", self.describe_color),
            )
            if enabled
        )
        return (
            f"SHOT parameters:\n"
            f" -- radius: {self.radius}\n"
            f" -- channels: {channels}\n"
            f" -- minimum neighborhood size for the local RF: {self.min_lrf_neighbors}\n"
            f" -- number of threads: {self.n_threads if self.n_threads > 0 else 'all'}"
        )

    def validate(self) -> None:
        check_radius("radius", self.radius)
        if not (self.describe_shape or self.describe_color):
            raise ValueError("SHOT should describe at least the shape or the color")
        check_bins("shape_bins", self.shape_bins)
        check_bins("color_bins", self.color_bins)


@dataclass
class ShapeContextConfig(Config):
    """Parameters of the 3D shape context."""

    radius: float | None = None
    azimuth_bins: int = 4
    elevation_bins: int = 4
    radius_bins: int = 4
    minimal_radius: float = 0.004
    point_density_radius: float = 0.008
    seed: int = 12345
    n_threads: int = 0
    disable_progress_bar: bool = True

    def help_message(self) -> str:
        return (
            f"3D shape context parameters:\n"
            f" -- radius: {self.radius} (minimal radius: {self.minimal_radius})\n"
            f" -- bins: {self.azimuth_bins} azimuth x {self.elevation_bins} elevation x {self.radius_bins} radius\n"
            f" -- point density radius: {self.point_density_radius}\n"
            f" -- number of threads: {self.n_threads if self.n_threads > 0 else 'all'}"
        )

    def validate(self) -> None:
        check_radius("radius", self.radius)
        check_radius("minimal_radius", self.minimal_radius)
        check_radius("point_density_radius", self.point_density_radius)
        if self.minimal_radius >= self.radius:
            raise ValueError(
                f"The minimal radius ({self.minimal_radius}) should be smaller than the radius ({self.radius})"
            )
        check_bins("azimuth_bins", self.azimuth_bins)
        check_bins("elevation_bins", self.elevation_bins)
        check_bins("radius_bins", self.radius_bins)


@dataclass
class UniqueShapeContextConfig(Config):
    """Parameters of the unique shape context, a shape context computed in a repeatable local reference frame."""

    radius: float | None = None
    azimuth_bins: int = 4
    elevation_bins: int = 4
    radius_bins: int = 4
    minimal_radius: float = 0.004
    point_density_radius: float = 0.008
    local_radius: float = 0.04
    min_lrf_neighbors: int = 5
    n_threads: int = 0
    disable_progress_bar: bool = True

    def help_message(self) -> str:
        return (
            f"Unique shape context parameters:\n"
            f" -- radius: {self.radius} (minimal radius: {self.minimal_radius})\n"
            f" -- local RF radius: {self.local_radius}\n"
            f" -- bins: {self.azimuth_bins} azimuth x {self.elevation_bins} elevation x {self.radius_bins} radius\n"
            f" -- point density radius: {self.point_density_radius}\n"
            f" -- number of threads: {self.n_threads if self.n_threads > 0 else 'all'}"
        )

    def validate(self) -> None:
        check_radius("radius", self.radius)
        check_radius("minimal_radius", self.minimal_radius)
        check_radius("point_density_radius", self.point_density_radius)
        check_radius("local_radius", self.local_radius)
        if self.minimal_radius >= self.radius:
            raise ValueError(
                f"The minimal radius ({self.minimal_radius}) should be smaller than the radius ({self.radius})"
            )
        check_bins("azimuth_bins", self.azimuth_bins)
        check_bins("elevation_bins", self.elevation_bins)
        check_bins("radius_bins", self.radius_bins)


class DescriptorsConfig(TypedDict):
    shot: ShotConfig
    shape_context: ShapeContextConfig
    unique_shape_context: UniqueShapeContextConfig


def load_config_from_yaml(
    config_file_path: str, command_line_args: dict[str, Any]
) -> DescriptorsConfig:
    """
    Loads a YAML config file and overrides its values with the non-null values found in command_line_args.
    """

    def get_values(
        default_values: dict[str, Any], override_values: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Overrides entries from a dictionary when values are non-null.
        """
        return {
            **default_values,
            **{
                k: v
                for k, v in override_values.items()
                if k in default_values and v is not None
            },
        }

    with open(config_file_path) as f:
        config = yaml.safe_load(f.read())["descriptors"]

    return {
        "shot": ShotConfig(
            **get_values(config["shot"], command_line_args),
        ),
        "shape_context": ShapeContextConfig(
            **get_values(config["shape_context"], command_line_args),
        ),
        "unique_shape_context": UniqueShapeContextConfig(
            **get_values(config["unique_shape_context"], command_line_args),
        ),
    }
