import argparse
import logging
from pathlib import Path

import coloredlogs
import numpy as np

from scripts.parse_args import parse_args
from shot_3dsc import (
    PointCloud,
    ShapeContext3DEstimator,
    ShotEstimator,
    UniqueShapeContextEstimator,
    checkpoint,
    load_config_from_yaml,
)

estimators = {
    "shot": ShotEstimator,
    "shape_context": ShapeContext3DEstimator,
    "unique_shape_context": UniqueShapeContextEstimator,
}


def load_array(file_path: str) -> np.ndarray:
    """Loads an array saved either with numpy.save or as whitespace-separated text."""
    if Path(file_path).suffix == ".npy":
        return np.load(file_path)
    return np.loadtxt(file_path, ndmin=2)


def load_point_cloud(file_path: str) -> PointCloud:
    """
    Loads an (N, 3) array of points or an (N, 6) array of points followed by their RGB colors.
    """
    data = load_array(file_path)
    if data.ndim != 2 or data.shape[1] not in (3, 6):
        raise ValueError(
            f"Expected an (N, 3) or (N, 6) array in {file_path}, got shape {data.shape}"
        )
    return PointCloud(
        points=data[:, :3],
        colors=data[:, 3:].astype(np.uint8) if data.shape[1] == 6 else None,
    )


def main(args: argparse.Namespace | None = None) -> None:
    """
    Computes descriptors on a point cloud and saves them along with the local reference frames as .npy files.

    Args:
        args: Arguments parsed from command-line using argparse.
    """
    coloredlogs.install(
        level="INFO",
        fmt="%(asctime)s %(levelname)-7s %(message)s",
        field_styles={
            "levelname": {"color": "black", "bright": True, "bold": True},
            "asctime": {"color": "magenta", "bright": True},
        },
        level_styles={
            "info": {"color": "cyan", "faint": True},
            "critical": {"color": "red", "bold": True},
            "error": {"color": "red", "bright": True},
            "warning": {"color": "yellow", "bright": True},
        },
    )

    args = args or parse_args()
    configuration = load_config_from_yaml(args.config, vars(args))[
        args.descriptor_choice
    ]
    logging.info(configuration.help_message())

    global_timer = checkpoint()
    timer = checkpoint()
    cloud = load_point_cloud(args.points_file_path)
    surface = (
        load_point_cloud(args.surface_file_path)
        if args.surface_file_path is not None
        else None
    )
    normals = (
        load_array(args.normals_file_path)
        if args.normals_file_path is not None
        else None
    )
    indices = (
        load_array(args.indices_file_path).astype(np.int64).ravel()
        if args.indices_file_path is not None
        else None
    )
    timer("Time spent retrieving the data")

    estimator = estimators[args.descriptor_choice](configuration)
    descriptors = estimator.compute(
        cloud, normals=normals, surface=surface, indices=indices
    )
    timer(
        f"Time spent computing {len(descriptors)} descriptors of length {estimator.descriptor_length}"
    )
    if not descriptors.is_dense:
        logging.warning(
            "Some query points have invalid coordinates, their records are filled with NaNs"
        )

    (output_dir := Path(args.output_dir)).mkdir(exist_ok=True, parents=True)
    file_name = f"{Path(args.points_file_path).stem}_{args.descriptor_choice}"
    np.save(str(output_dir / f"{file_name}_descriptors.npy"), descriptors.descriptors)
    np.save(str(output_dir / f"{file_name}_local_rfs.npy"), descriptors.local_rfs)
    logging.info(f"Descriptors and local reference frames saved under {output_dir}")

    global_timer("Total time spent")


if __name__ == "__main__":
    main()
