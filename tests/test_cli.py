"""
Tests for the analyse, batch and export subcommands.
"""

import pytest

from graphene_analysis.cli import build_parser, main
from graphene_analysis.configuration import AnalysisConfig, load_config, save_config


@pytest.fixture
def config_file(tmp_path, override_config):
    return save_config(override_config, tmp_path / 'config.json')


def test_export_writes_defaults(tmp_path):
    path = tmp_path / 'default.json'

    assert main(['export', str(path)]) == 0
    assert load_config(path) == AnalysisConfig()


def test_analyse(tmp_path, config_file, sem_like_tif, capsys):
    output_dir = tmp_path / 'output'

    assert main(['analyse', '-c', str(config_file), '-o', str(output_dir), str(sem_like_tif)]) == 0

    assert 'Area within range of graphene edge' in capsys.readouterr().out
    assert (output_dir / 'sample_bacteria-exclusion.png').exists()


def test_batch(tmp_path, config_file, sem_like_tif):
    output_dir = tmp_path / 'output'

    assert main(['batch', '-c', str(config_file), '-p', '1', '-o', str(output_dir), str(tmp_path)]) == 0
    assert (output_dir / 'batch_summary.csv').exists()


def test_analysis_errors_give_exit_code(tmp_path, config_file):
    assert main(['analyse', '-c', str(config_file), str(tmp_path / 'missing.tif')]) == 1


def test_subcommand_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
