"""
Tests for directory scanning, the pickle-able worker and batch aggregation.
"""

import cv2
import pandas as pd
import pytest

from graphene_analysis.batch_processing import (
    BatchAbortedError,
    BatchAnalyzer,
    BatchSummary,
    find_images,
    process_single_image_worker,
)


@pytest.fixture
def image_dir(tmp_path, sem_like_image):
    directory = tmp_path / 'images'
    directory.mkdir()
    cv2.imwrite(str(directory / 'b.tif'), sem_like_image)
    cv2.imwrite(str(directory / 'a.TIFF'), sem_like_image)
    cv2.imwrite(str(directory / 'notes.png'), sem_like_image)
    return directory


def test_find_images_filters_and_sorts(image_dir):
    assert [path.name for path in find_images(image_dir)] == ['a.TIFF', 'b.tif']


def test_find_images_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        find_images(tmp_path / 'missing')


def test_worker_reports_failure(tmp_path, override_config):
    broken = tmp_path / 'broken.tif'
    broken.write_bytes(b'not an image')

    result = process_single_image_worker({'image_path': str(broken), 'config': override_config})

    assert result['success'] is False
    assert result['image_name'] == 'broken.tif'
    assert 'Could not load image' in result['error']


def test_worker_reports_unexpected_failure(tmp_path, sem_like_tif, override_config):
    blocker = tmp_path / 'blocker'
    blocker.write_text('a file, not a directory')

    result = process_single_image_worker({
        'image_path': str(sem_like_tif),
        'config': override_config,
        'output_dir': str(blocker / 'diagnostics'),
        'debug': True,
    })

    assert result['success'] is False
    assert result['image_name'] == 'sample.tif'
    assert result['error']


def test_worker_success(sem_like_tif, override_config):
    result = process_single_image_worker({'image_path': str(sem_like_tif), 'config': override_config})

    assert result['success'] is True
    assert result['image_name'] == 'sample.tif'
    assert 0.0 < result['exclusion_percent'] < 100.0


def test_aggregate_uses_population_deviation():
    summary = BatchSummary(results=[
        {'image_name': 'a', 'exclusion_percent': 10.0},
        {'image_name': 'b', 'exclusion_percent': 20.0},
        {'image_name': 'c'},
    ])

    BatchAnalyzer._aggregate(summary)

    assert summary.mean_exclusion_percent == pytest.approx(15.0)
    assert summary.std_exclusion_percent == pytest.approx(5.0)


def test_aggregate_without_exclusion():
    summary = BatchSummary(results=[{'image_name': 'a'}])
    BatchAnalyzer._aggregate(summary)

    assert summary.mean_exclusion_percent is None
    assert summary.std_exclusion_percent is None


def test_analyze_directory(image_dir, tmp_path, override_config):
    analyzer = BatchAnalyzer(override_config, num_processes=2)
    summary = analyzer.analyze_directory(image_dir, tmp_path / 'output')

    assert summary.total_images == 2
    assert summary.successful == 2
    assert [row['image_name'] for row in summary.results] == ['a.TIFF', 'b.tif']
    # Identical images give identical ratios
    assert summary.std_exclusion_percent == pytest.approx(0.0)

    table = pd.read_csv(summary.summary_path)
    assert list(table['image_name']) == ['a.TIFF', 'b.tif']


def test_failed_image_aborts_batch(image_dir, tmp_path, override_config):
    (image_dir / 'c.tif').write_bytes(b'not an image')
    analyzer = BatchAnalyzer(override_config, num_processes=1)

    with pytest.raises(BatchAbortedError):
        analyzer.analyze_directory(image_dir, tmp_path / 'output')


def test_failed_image_is_discarded(image_dir, tmp_path, override_config):
    (image_dir / 'c.tif').write_bytes(b'not an image')
    analyzer = BatchAnalyzer(override_config, num_processes=1, discard_errors=True)

    summary = analyzer.analyze_directory(image_dir, tmp_path / 'output')

    assert summary.total_images == 3
    assert summary.successful == 2
    assert summary.mean_exclusion_percent == pytest.approx(summary.results[0]['exclusion_percent'])


def test_empty_directory(tmp_path):
    summary = BatchAnalyzer(num_processes=1).analyze_directory(tmp_path, tmp_path / 'output')

    assert summary.total_images == 0
    assert summary.summary_path is None
    assert summary.mean_exclusion_percent is None
