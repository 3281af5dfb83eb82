"""
Tests for the typed configuration sections and their JSON persistence.
"""

import json
import logging

import pytest

from graphene_analysis._version import __version__
from graphene_analysis.configuration import AnalysisConfig, load_config, save_config
from graphene_analysis.errors import ConfigurationError


def test_defaults():
    config = AnalysisConfig()

    assert config.program_version == __version__
    assert config.pre_processing.equalize_histogram is False
    assert config.scale_detection.override_scale is False
    assert config.bacteria_exclusion.enabled is True
    assert config.bacteria_exclusion.contrast_threshold == 45.0
    assert config.bacteria_exclusion.minimum_edge_area == 5
    assert config.bacteria_exclusion.exclusion_radius == 0.9
    assert config.bacteria_exclusion.radius_adjusted is False
    assert config.graphene_angles.enabled is False
    assert config.graphene_angles.blur == 1.0
    assert config.graphene_angles.threshold == 150
    assert config.graphene_angles.min_graphene_size == 0.5
    assert config.graphene_angles.min_graphene_ratio == 3.0


def test_partial_dict_is_merged_over_defaults():
    config = AnalysisConfig.from_dict({
        'bacteria_exclusion': {'exclusion_radius': 1.5, 'minimum_edge_area': 10},
        'graphene_angles': {'enabled': True},
    })

    assert config.bacteria_exclusion.exclusion_radius == 1.5
    assert config.bacteria_exclusion.minimum_edge_area == 10
    assert config.bacteria_exclusion.contrast_threshold == 45.0
    assert config.graphene_angles.enabled is True
    assert config.graphene_angles.threshold == 150


def test_numbers_take_the_type_of_the_default():
    config = AnalysisConfig.from_dict({'bacteria_exclusion': {'contrast_threshold': 50}})

    assert isinstance(config.bacteria_exclusion.contrast_threshold, float)


def test_whole_floats_are_accepted_for_integer_values():
    config = AnalysisConfig.from_dict({'bacteria_exclusion': {'minimum_edge_area': 5.0}})

    assert config.bacteria_exclusion.minimum_edge_area == 5
    assert isinstance(config.bacteria_exclusion.minimum_edge_area, int)


@pytest.mark.parametrize('data', [
    {'unknown_section': {}},
    {'bacteria_exclusion': {'unknown_value': 1}},
    {'bacteria_exclusion': 3},
    {'bacteria_exclusion': {'enabled': 'yes'}},
    {'graphene_angles': {'threshold': 'high'}},
    {'graphene_angles': {'threshold': True}},
    {'bacteria_exclusion': {'minimum_edge_area': 5.7}},
    {'bacteria_exclusion': {'contrast_threshold': False}},
    {'scale_detection': {'override_scale_pixels': float('nan')}},
])
def test_invalid_values_are_rejected(data):
    with pytest.raises(ConfigurationError):
        AnalysisConfig.from_dict(data)


def test_save_and_load(tmp_path):
    config = AnalysisConfig()
    config.graphene_angles.enabled = True
    config.scale_detection.override_scale_pixels = 250

    path = save_config(config, tmp_path / 'config.json')

    assert load_config(path) == config


def test_version_mismatch_warns(tmp_path, caplog):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'program_version': '0.0.1'}), encoding='utf-8')

    with caplog.at_level(logging.WARNING, logger='graphene_analysis.configuration'):
        config = load_config(path)

    assert config.program_version == '0.0.1'
    assert 'another version' in caplog.text


def test_malformed_file(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text('{not json', encoding='utf-8')

    with pytest.raises(ConfigurationError):
        load_config(path)

    path.write_text('[1, 2]', encoding='utf-8')
    with pytest.raises(ConfigurationError):
        load_config(path)
