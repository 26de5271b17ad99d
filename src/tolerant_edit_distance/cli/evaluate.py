import json

import click
from upath import UPath

from tolerant_edit_distance.config import (
    DEFAULT_DISTANCE_THRESHOLD,
    DEFAULT_SOLVER_BACKEND,
    TolerantEditDistanceConfig,
    parse_voxel_size,
)

import logging

logger = logging.getLogger(__name__)


@click.command
@click.option(
    "--ground_truth",
    "-g",
    type=click.Path(exists=True),
    required=True,
    help="Path to the ground truth volume (.npy file or zarr array)",
)
@click.option(
    "--reconstruction",
    "-r",
    type=click.Path(exists=True),
    required=True,
    help="Path to the reconstruction volume (.npy file or zarr array)",
)
@click.option(
    "--distance_threshold",
    "-d",
    type=click.FLOAT,
    default=DEFAULT_DISTANCE_THRESHOLD,
    help=f"The maximum allowed squared distance for a boundary shift, in physical units. Defaults to {DEFAULT_DISTANCE_THRESHOLD}",
)
@click.option(
    "--voxel_size",
    "-v",
    type=click.STRING,
    default=None,
    help="Voxel size as 'z,y,x'. Defaults to the 'voxel_size' attribute of the ground truth, or 10,1,1",
)
@click.option(
    "--gt_background",
    type=click.FLOAT,
    default=None,
    help="Background label of the ground truth. Requires --rec_background",
)
@click.option(
    "--rec_background",
    type=click.FLOAT,
    default=None,
    help="Background label of the reconstruction. Requires --gt_background",
)
@click.option(
    "--allow_label_removal",
    is_flag=True,
    help="Allow reconstruction labels to disappear entirely after relabeling",
)
@click.option(
    "--solver",
    type=click.STRING,
    default=DEFAULT_SOLVER_BACKEND,
    help=f"OR-tools solver backend. Defaults to {DEFAULT_SOLVER_BACKEND}",
)
@click.option(
    "--result_file",
    "-o",
    type=click.Path(),
    default="result.json",
    help="Path for the result json file. Defaults to 'result.json'",
)
@click.option(
    "--corrected_path",
    "-c",
    type=click.Path(),
    default=None,
    help="Optional path to save the corrected reconstruction (.npy or zarr)",
)
def evaluate_cli(
    ground_truth,
    reconstruction,
    distance_threshold,
    voxel_size,
    gt_background,
    rec_background,
    allow_label_removal,
    solver,
    result_file,
    corrected_path,
):
    """
    Compute the tolerant edit distance between a ground truth and a reconstruction.
    """

    from tolerant_edit_distance.evaluate import tolerant_edit_distance
    from tolerant_edit_distance.volume import load_volume, save_volume

    if voxel_size is not None:
        voxel_size = parse_voxel_size(voxel_size)

    gt = load_volume(ground_truth, voxel_size)
    rec = load_volume(reconstruction, gt.voxel_size)

    config = TolerantEditDistanceConfig.from_env()
    config.distance_threshold = distance_threshold
    config.voxel_size = gt.voxel_size
    config.gt_background_label = gt_background
    config.rec_background_label = rec_background
    config.allow_label_removal = allow_label_removal or config.allow_label_removal
    config.solver_backend = solver
    try:
        config.validate()
    except ValueError as e:
        raise click.BadParameter(str(e))

    logger.info(f"Launching tolerant edit distance for: {reconstruction}")
    result = tolerant_edit_distance(gt, rec, config)

    with UPath(result_file).open("w") as f:
        json.dump(result.to_scores(config), f, indent=4)
    logger.info(f"Scores written to {result_file}")

    if corrected_path is not None:
        save_volume(result.corrected_reconstruction, corrected_path, gt.voxel_size)

    click.echo(f"splits: {result.num_splits} merges: {result.num_merges}")
