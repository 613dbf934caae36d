from multiprocessing.pool import ThreadPool

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from shot_3dsc import PointCloud, ShotConfig, ShotEstimator

RADIUS = 0.04


def test_descriptor_length():
    assert ShotEstimator(ShotConfig(radius=RADIUS)).descriptor_length == 352
    assert ShotEstimator(ShotConfig(radius=RADIUS, shape_bins=20)).descriptor_length == 672
    assert (
        ShotEstimator(
            ShotConfig(radius=RADIUS, describe_shape=False, describe_color=True)
        ).descriptor_length
        == 992
    )
    assert (
        ShotEstimator(ShotConfig(radius=RADIUS, describe_color=True)).descriptor_length
        == 1344
    )


def test_shot(paraboloid):
    cloud, normals = paraboloid
    output = ShotEstimator(ShotConfig(radius=RADIUS)).compute(cloud, normals)

    assert len(output) == len(cloud)
    assert output.descriptor_length == 352
    assert output.is_dense
    assert (output.descriptors >= 0).all()
    np.testing.assert_allclose(np.linalg.norm(output.descriptors, axis=1), 1.0)

    frames = output.local_rfs.reshape(-1, 3, 3)
    np.testing.assert_allclose(
        frames @ frames.transpose(0, 2, 1), np.broadcast_to(np.eye(3), frames.shape), atol=1e-10
    )


def test_equivalent_selections(paraboloid, query_indices):
    cloud, normals = paraboloid
    estimator = ShotEstimator(ShotConfig(radius=RADIUS))

    on_every_point = estimator.compute(cloud, normals).extract(query_indices)
    on_extracted_points = estimator.compute(
        cloud.extract(query_indices), normals, surface=cloud
    )
    on_indices = estimator.compute(cloud, normals, indices=query_indices)

    for output in (on_extracted_points, on_indices):
        np.testing.assert_array_equal(output.descriptors, on_every_point.descriptors)
        np.testing.assert_array_equal(output.local_rfs, on_every_point.local_rfs)

    # indices on top of an extracted cloud
    sub_indices = np.arange(len(query_indices) // 2)
    on_nested_subset = estimator.compute(
        cloud.extract(query_indices), normals, surface=cloud, indices=sub_indices
    )
    np.testing.assert_array_equal(
        on_nested_subset.descriptors, on_every_point.descriptors[sub_indices]
    )
    np.testing.assert_array_equal(
        on_nested_subset.local_rfs, on_every_point.local_rfs[sub_indices]
    )


@pytest.mark.parametrize("n_threads", [1, 2, 0])
def test_thread_count_does_not_change_results(paraboloid, query_indices, n_threads):
    cloud, normals = paraboloid
    reference = ShotEstimator(ShotConfig(radius=RADIUS, n_threads=1)).compute(
        cloud, normals, indices=query_indices
    )
    output = ShotEstimator(ShotConfig(radius=RADIUS, n_threads=n_threads)).compute(
        cloud, normals, indices=query_indices
    )
    np.testing.assert_array_equal(output.descriptors, reference.descriptors)
    np.testing.assert_array_equal(output.local_rfs, reference.local_rfs)


def test_more_bins(paraboloid, query_indices):
    cloud, normals = paraboloid
    default_bins = ShotEstimator(ShotConfig(radius=RADIUS)).compute(
        cloud, normals, indices=query_indices
    )
    more_bins = ShotEstimator(ShotConfig(radius=RADIUS, shape_bins=20)).compute(
        cloud, normals, indices=query_indices
    )
    assert more_bins.descriptor_length == 32 * 21
    np.testing.assert_array_equal(more_bins.local_rfs, default_bins.local_rfs)
    assert not np.allclose(more_bins.descriptors[:, :352], default_bins.descriptors)
    np.testing.assert_allclose(np.linalg.norm(more_bins.descriptors, axis=1), 1.0)


def test_invariance_to_rigid_motions(paraboloid, query_indices):
    cloud, normals = paraboloid
    rotation = Rotation.random(random_state=0).as_matrix()
    moved_cloud = PointCloud(cloud.points @ rotation.T + np.array([0.3, 0.1, -1.0]))

    estimator = ShotEstimator(ShotConfig(radius=RADIUS))
    output = estimator.compute(cloud, normals, indices=query_indices)
    moved_output = estimator.compute(moved_cloud, normals @ rotation.T, indices=query_indices)
    np.testing.assert_allclose(moved_output.descriptors, output.descriptors, atol=1e-6)


def test_color(colored_paraboloid, query_indices):
    cloud, normals = colored_paraboloid
    shape_only = ShotEstimator(ShotConfig(radius=RADIUS)).compute(
        cloud, normals, indices=query_indices
    )
    color_only = ShotEstimator(
        ShotConfig(radius=RADIUS, describe_shape=False, describe_color=True)
    ).compute(cloud, normals, indices=query_indices)
    shape_and_color = ShotEstimator(
        ShotConfig(radius=RADIUS, describe_color=True)
    ).compute(cloud, normals, indices=query_indices)

    assert color_only.descriptor_length == 992
    assert shape_and_color.descriptor_length == 1344
    for output in (color_only, shape_and_color):
        assert (output.descriptors >= 0).all()
        np.testing.assert_allclose(np.linalg.norm(output.descriptors, axis=1), 1.0)
        np.testing.assert_array_equal(output.local_rfs, shape_only.local_rfs)

    # both channels are normalized together
    shape_part = shape_and_color.descriptors[:, :352]
    np.testing.assert_allclose(
        shape_part / np.linalg.norm(shape_part, axis=1, keepdims=True),
        shape_only.descriptors,
        atol=1e-12,
    )
    color_part = shape_and_color.descriptors[:, 352:]
    np.testing.assert_allclose(
        color_part / np.linalg.norm(color_part, axis=1, keepdims=True),
        color_only.descriptors,
        atol=1e-12,
    )

    extracted = ShotEstimator(ShotConfig(radius=RADIUS, describe_color=True)).compute(
        cloud.extract(query_indices), normals, surface=cloud
    )
    np.testing.assert_array_equal(extracted.descriptors, shape_and_color.descriptors)


def test_invalid_inputs(paraboloid, colored_paraboloid):
    cloud, normals = paraboloid
    estimator = ShotEstimator(ShotConfig(radius=RADIUS))
    with pytest.raises(ValueError):
        estimator.compute(cloud)
    with pytest.raises(ValueError):
        estimator.compute(cloud, normals[:-1])
    with pytest.raises(ValueError):
        ShotEstimator(ShotConfig(radius=RADIUS, describe_color=True)).compute(
            cloud, normals
        )
    colored_cloud, _ = colored_paraboloid
    with pytest.raises(ValueError):
        ShotEstimator(ShotConfig(radius=RADIUS, describe_color=True)).compute(
            colored_cloud.extract([0, 1]), normals, surface=cloud
        )
    with pytest.raises(ValueError):
        ShotEstimator(ShotConfig())
    with pytest.raises(ValueError):
        ShotEstimator(ShotConfig(radius=RADIUS, describe_shape=False))
    with pytest.raises(IndexError):
        estimator.compute(cloud, normals, indices=[len(cloud)])


def test_invalid_query_points(paraboloid):
    cloud, normals = paraboloid
    points = cloud.points.copy()
    points[4] = np.nan
    output = ShotEstimator(ShotConfig(radius=RADIUS)).compute(
        PointCloud(points[:10]), normals, surface=cloud
    )
    assert not output.is_dense
    assert np.isnan(output.descriptors[4]).all()
    assert np.isnan(output.local_rfs[4]).all()
    assert np.isfinite(np.delete(output.descriptors, 4, axis=0)).all()


def test_isolated_points():
    points = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.01, 0.0, 0.0]])
    normals = np.tile([0.0, 0.0, 1.0], (3, 1))
    output = ShotEstimator(ShotConfig(radius=RADIUS)).compute(PointCloud(points), normals)
    assert output.is_dense
    # no neighbor at all
    assert not output.descriptors[0].any()
    assert not output.local_rfs[0].any()
    # a single neighbor: no reference frame, the vote is only located with the normal
    assert not output.local_rfs[1].any()
    np.testing.assert_allclose(np.linalg.norm(output.descriptors[1]), 1.0)


def test_empty_selection(paraboloid):
    cloud, normals = paraboloid
    output = ShotEstimator(ShotConfig(radius=RADIUS)).compute(
        cloud, normals, indices=np.zeros(0, dtype=np.int64)
    )
    assert len(output) == 0
    assert output.descriptors.shape == (0, 352)


def known_neighborhood_shot(n_bins: int, cosine: float = 0.36) -> np.ndarray:
    """SHOT of the query point of the known neighborhood, derived by hand from its geometry."""
    outer_distance = np.sqrt(0.02**2 + 0.01**2 + 0.004**2)
    inner_distance = np.sqrt(0.004**2 + 0.003**2 + 0.006**2)

    # outer neighbors spill over the inner husk, the other vertical volume and the next azimuth sector
    outer_husk = (RADIUS * 3 / 4 - outer_distance) / (RADIUS / 2)
    outer_vertical = (np.arccos(0.004 / outer_distance) - np.pi / 4) / (np.pi / 2)
    outer_horizontal = (np.arctan2(0.01, 0.02) - np.pi / 8) / (np.pi / 4)
    # inner neighbors lie before the centers of the inner husk and of the upper volume, they only spill in azimuth
    inner_husk = (RADIUS / 4 - inner_distance) / (RADIUS / 2)
    inner_vertical = (np.pi / 4 - np.arccos(0.006 / inner_distance)) / (np.pi / 2)
    inner_horizontal = (np.arctan2(0.003, 0.004) - np.pi / 8) / (np.pi / 4)

    outer_self_weight = 3 - outer_husk - outer_vertical - outer_horizontal
    inner_self_weight = 3 - inner_husk - inner_vertical - inner_horizontal
    # (own volume, adjacent volumes along the radius, the elevation and the azimuth)
    outer_volumes = [(19, (17, 18, 23)), (18, (16, 19, 22)), (15, (13, 14, 11)), (14, (12, 15, 10))]
    inner_volumes = [(17, 21), (13, 9), (29, 25), (1, 5)]

    stride = n_bins + 1
    position = (1 + cosine) * n_bins / 2
    step = int(np.floor(position + 0.5))
    # the position lies below the center of its bin, the previous bin gets the rest
    delta = step - position
    histogram = np.zeros(32 * stride)
    for volume, adjacent_volumes in outer_volumes:
        histogram[volume * stride + step] += 1 - delta + outer_self_weight
        histogram[volume * stride + step - 1] += delta
        for adjacent_volume, weight in zip(
            adjacent_volumes, (outer_husk, outer_vertical, outer_horizontal)
        ):
            histogram[adjacent_volume * stride + step] += weight
    for volume, adjacent_volume in inner_volumes:
        histogram[volume * stride + step] += 1 - delta + inner_self_weight
        histogram[volume * stride + step - 1] += delta
        histogram[adjacent_volume * stride + step] += inner_horizontal
    return histogram / np.linalg.norm(histogram)


@pytest.mark.parametrize("shape_bins", [10, 20])
def test_known_neighborhood(known_neighborhood, shape_bins):
    cloud, normals = known_neighborhood
    output = ShotEstimator(ShotConfig(radius=RADIUS, shape_bins=shape_bins)).compute(
        cloud, normals, indices=[0]
    )
    np.testing.assert_allclose(output.local_rfs[0].reshape(3, 3), np.eye(3), atol=1e-9)
    np.testing.assert_allclose(
        output.descriptors[0], known_neighborhood_shot(shape_bins), atol=1e-9
    )


def test_query_normal_is_not_used_with_a_frame(paraboloid, known_neighborhood):
    cloud, normals = known_neighborhood
    flipped_normals = normals.copy()
    flipped_normals[0] = [1.0, 0.0, 0.0]
    output = ShotEstimator(ShotConfig(radius=RADIUS)).compute(
        cloud, flipped_normals, indices=[0]
    )
    np.testing.assert_allclose(output.descriptors[0], known_neighborhood_shot(10), atol=1e-9)

    cloud, normals = paraboloid
    center = int(np.argmin(np.linalg.norm(cloud.points[:, :2], axis=1)))
    tilted_normals = normals.copy()
    tilted_normals[center] = [0.6, 0.0, 0.8]
    estimator = ShotEstimator(ShotConfig(radius=RADIUS))
    reference = estimator.compute(cloud, normals, indices=[center])
    output = estimator.compute(cloud, tilted_normals, indices=[center])
    assert np.linalg.norm(reference.descriptors[0]) > 0
    np.testing.assert_array_equal(output.local_rfs, reference.local_rfs)
    np.testing.assert_array_equal(output.descriptors, reference.descriptors)


def test_concurrent_calls_on_one_estimator(paraboloid, small_paraboloid):
    rng = np.random.default_rng(0)
    inputs = [
        (PointCloud(cloud.points, colors=rng.integers(0, 256, size=(len(cloud), 3))), normals)
        for cloud, normals in (paraboloid, small_paraboloid)
    ] * 4
    estimator = ShotEstimator(ShotConfig(radius=RADIUS, describe_color=True, n_threads=1))

    with ThreadPool(2) as pool:
        outputs = pool.starmap(estimator.compute, inputs)
    for (cloud, normals), output in zip(inputs, outputs):
        expected = estimator.compute(cloud, normals)
        np.testing.assert_array_equal(output.descriptors, expected.descriptors)
        np.testing.assert_array_equal(output.local_rfs, expected.local_rfs)
