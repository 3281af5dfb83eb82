"""
Tests for the field of view normalization of stitched radial images.
"""

import numpy as np
import pytest

from graphene_analysis.radius_normalization import (
    RadialBucketTable,
    annulus_weighted_ratio,
    normalize_exclusion,
    optical_center,
    radial_buckets,
)


def test_optical_center_is_right_edge_middle():
    assert optical_center((10, 20)) == (20, 5)
    assert optical_center((11, 20)) == (20, 5)


def test_fully_excluded_buckets_average_to_one():
    shape = (10, 10)
    mask = np.full(shape, 255, dtype=np.uint8)
    valid = np.ones(shape, dtype=bool)

    buckets = radial_buckets(mask, valid)

    assert len(buckets) == 10
    assert np.all(buckets.means[buckets.counts > 0] == 1.0)

    # Pixels at a rounded distance of 10 or more from (10, 5) are dropped
    ys, xs = np.mgrid[0:10, 0:10]
    in_range = np.rint(np.sqrt((10 - xs) ** 2 + (ys - 5) ** 2)) < 10
    assert int(buckets.counts.sum()) == int(in_range.sum())


def test_invalid_pixels_are_ignored():
    shape = (10, 10)
    mask = np.full(shape, 255, dtype=np.uint8)
    valid = np.zeros(shape, dtype=bool)

    buckets = radial_buckets(mask, valid)

    assert not buckets.counts.any()
    assert not buckets.means.any()


def test_annulus_weighting():
    ones = RadialBucketTable(means=np.ones(10), counts=np.ones(10, dtype=np.int64))
    zeros = RadialBucketTable(means=np.zeros(10), counts=np.ones(10, dtype=np.int64))

    # Ring areas pi*(2d - 1) summed over d = 0..9, relative to pi * 9^2
    assert annulus_weighted_ratio(ones, 10) == pytest.approx(80 / 81)
    assert annulus_weighted_ratio(zeros, 10) == 0.0


def test_annulus_weighting_needs_two_columns():
    table = RadialBucketTable(means=np.ones(1), counts=np.ones(1, dtype=np.int64))
    with pytest.raises(ValueError):
        annulus_weighted_ratio(table, 1)


def test_black_margins_are_outside_the_field_of_view():
    image = np.zeros((40, 40), dtype=np.uint8)
    image[:, 20:] = 120
    mask = np.full(image.shape, 255, dtype=np.uint8)

    result = normalize_exclusion(image, mask)

    assert not result.valid_region[:, :21].any()
    assert result.valid_region[20, 30]
    assert not result.valid_region[0, :].any()
    assert result.ratio == pytest.approx(annulus_weighted_ratio(result.buckets, 40))
    assert set(np.unique(result.buckets.means)) <= {0.0, 1.0}


def test_black_image_has_no_field_of_view():
    image = np.zeros((20, 30), dtype=np.uint8)
    mask = np.full(image.shape, 255, dtype=np.uint8)

    result = normalize_exclusion(image, mask)

    assert len(result.hull) == 0
    assert not result.valid_region.any()
    assert result.ratio == 0.0


def test_mismatched_shapes_are_rejected():
    with pytest.raises(ValueError):
        normalize_exclusion(np.zeros((10, 10), dtype=np.uint8), np.zeros((10, 11), dtype=np.uint8))


def test_profile_dataframe():
    table = RadialBucketTable(means=np.array([0.0, 0.5, 1.0]), counts=np.array([1, 2, 3]))
    frame = table.to_dataframe(0.5)

    assert list(frame.columns) == ['radial_distance', 'ratio']
    assert list(frame['radial_distance']) == [0.0, 0.5, 1.0]
    assert list(frame['ratio']) == [0.0, 0.5, 1.0]
