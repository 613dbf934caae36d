import argparse


def add_io_parameters(parser) -> None:
    parser.add_argument(
        "--points_file_path",
        type=str,
        required=True,
        help="Path to the points (.npy or .txt), as an (N, 3) array or an (N, 6) array with RGB colors.",
    )
    parser.add_argument(
        "--normals_file_path",
        type=str,
        default=None,
        help="Path to the normals of the search surface (.npy or .txt). Not needed by the unique shape context.",
    )
    parser.add_argument(
        "--surface_file_path",
        type=str,
        default=None,
        help="Path to the search surface (.npy or .txt). Leave empty to search neighbors in the input points.",
    )
    parser.add_argument(
        "--indices_file_path",
        type=str,
        default=None,
        help="Path to the indices of the points to compute descriptors on. Leave empty to use every point.",
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        default="./data/results",
        help="Directory in which the descriptors and the local reference frames are saved.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="./config.yaml",
        help="Path to the YAML config file.",
    )


def add_descriptor_parameters(parser) -> None:
    parser.add_argument(
        "--descriptor_choice",
        choices=["shot", "shape_context", "unique_shape_context"],
        type=str,
        default="shot",
        help="Choice of the descriptor.",
    )
    parser.add_argument(
        "--radius",
        type=float,
        default=None,
        help="Radius of the support of the descriptor. Overrides the value of the config file.",
    )
    parser.add_argument(
        "--describe_color",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Adds the color channel to SHOT.",
    )
    parser.add_argument(
        "--n_threads",
        type=int,
        default=None,
        help="Number of threads, 0 to use every core. Overrides the value of the config file.",
    )
    parser.add_argument(
        "--disable_progress_bar",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Disables the progress bar.",
    )


def parse_args() -> argparse.Namespace:
    """
    Parses the command line arguments. Also produces the help message.
    """
    parser = argparse.ArgumentParser(
        description="Computation of SHOT and shape context descriptors on a point cloud."
    )
    add_io_parameters(parser.add_argument_group("I/O"))
    add_descriptor_parameters(parser.add_argument_group("Descriptors"))

    return parser.parse_args()
