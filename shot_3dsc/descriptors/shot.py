"""
Implementation of the SHOT descriptor based on:
Federico Tombari, Samuele Salti, Luigi Di Stefano,
Unique signatures of histograms for local surface description,
European Conference on Computer Vision (ECCV), 2010

and of its color extension (CSHOT) based on:
Federico Tombari, Samuele Salti, Luigi Di Stefano,
A combined texture-shape descriptor for enhanced 3D feature matching,
IEEE International Conference on Image Processing (ICIP), 2011
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from shot_3dsc.base_computation import (
    ZERO_FRAME,
    accumulate_shot_channel,
    color_distance,
    compute_local_rf,
    compute_shot_spatial_weights,
    is_zero_frame,
    normalize_histogram,
    normalized_cielab,
    shot_histogram_length,
)
from shot_3dsc.configuration import ShotConfig
from shot_3dsc.core import Selection

from .base import DescriptorEstimator, SurfaceNormals


@dataclass
class LabColors:
    """Normalized CIELab colors of the query points and of the search surface."""

    query: npt.NDArray[np.float64]
    surface: npt.NDArray[np.float64]


class ShotEstimator(DescriptorEstimator):
    """
    Signature of Histograms of OrienTations.

    Each of the 32 volumes of the support holds a histogram of the cosine between the normals of the neighbors and
    the z axis of the local reference frame (shape channel), and optionally a histogram of the CIELab distance
    between their colors (color channel), stored right after the shape channel. The normal of the query point is
    only used when no local reference frame can be built.
    """

    name = "SHOT"

    def __init__(self, config: ShotConfig) -> None:
        super().__init__(config)
        self.config: ShotConfig = config

    @property
    def shape_length(self) -> int:
        return (
            shot_histogram_length(self.config.shape_bins)
            if self.config.describe_shape
            else 0
        )

    @property
    def color_length(self) -> int:
        return (
            shot_histogram_length(self.config.color_bins)
            if self.config.describe_color
            else 0
        )

    @property
    def descriptor_length(self) -> int:
        return self.shape_length + self.color_length

    def check_inputs(self, selection: Selection, normals: SurfaceNormals | None) -> None:
        if self.config.describe_color and (
            selection.query_colors is None or not selection.surface.has_colors
        ):
            raise ValueError(
                "Describing colors requires colors on both the input cloud and the search surface"
            )

    def prepare(
        self, selection: Selection, normals: SurfaceNormals | None
    ) -> LabColors | None:
        if not self.config.describe_color:
            return None
        return LabColors(
            query=normalized_cielab(selection.query_colors),
            surface=normalized_cielab(selection.surface.colors),
        )

    def compute_point(
        self,
        selection: Selection,
        normals: SurfaceNormals,
        colors: LabColors | None,
        query_idx: int,
    ) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
        descriptor = np.zeros(self.descriptor_length)
        query_point = selection.query_points[query_idx]
        neighbors_idx, sq_distances = selection.search.query(
            query_point, self.config.radius
        )
        if neighbors_idx.shape[0] == 0:
            return ZERO_FRAME.copy(), descriptor

        distances = np.sqrt(sq_distances)
        neighbors = selection.surface.points[neighbors_idx]
        local_rf = compute_local_rf(
            query_point,
            neighbors,
            distances,
            self.config.radius,
            self.config.min_lrf_neighbors,
        )

        if is_zero_frame(local_rf):
            # the normal of the query point is the one of its closest point on the surface
            query_normal_idx = neighbors_idx[0]
            if not normals.valid[query_normal_idx]:
                return local_rf, descriptor
            # no repeatable frame, the neighbors are only located along the normal
            axes = np.vstack((np.zeros(3), np.zeros(3), normals.normals[query_normal_idx]))
        else:
            axes = local_rf

        # the query point itself does not vote
        voting = distances > 0
        neighbors_idx, distances = neighbors_idx[voting], distances[voting]
        if neighbors_idx.shape[0] == 0:
            return local_rf, descriptor

        spatial_weights = compute_shot_spatial_weights(
            (neighbors[voting] - query_point) @ axes.T, distances, self.config.radius
        )

        if self.config.describe_shape:
            cosines = np.clip(normals.normals[neighbors_idx] @ axes[2], -1.0, 1.0)
            # neighbors without a usable normal are skipped
            bin_positions = np.where(
                normals.valid[neighbors_idx],
                (1.0 + cosines) * self.config.shape_bins / 2,
                np.nan,
            )
            accumulate_shot_channel(
                descriptor[: self.shape_length],
                spatial_weights,
                bin_positions,
                self.config.shape_bins,
            )

        if self.config.describe_color:
            bin_positions = (
                color_distance(
                    colors.query[query_idx], colors.surface[neighbors_idx]
                )
                * self.config.color_bins
            )
            accumulate_shot_channel(
                descriptor[self.shape_length :],
                spatial_weights,
                bin_positions,
                self.config.color_bins,
            )

        return local_rf, normalize_histogram(descriptor)
