"""Извлечение признаков и свойств из образцов."""

import math

import numpy as np
import pytest

from conftest import make_sample
from pgcit_ml import extract_features
from pgcit_ml.features import FeatureManager
from pgcit_ml.features.feature_resolver import discover_features, resolve_feature
from pgcit_ml.features.name_parser import FEATURE_DOMAINS, match_key, parse_name
from pgcit_ml.features.property_resolver import discover_properties, resolve_property
from pgcit_ml.utils.validators import ArgumentError


def test_parse_name_prefers_longest_domain():
    path = parse_name('dsc_heating_Tg_peak', FEATURE_DOMAINS)
    assert path.domain == 'dsc_heating'
    assert path.tokens == ('Tg', 'peak')
    assert parse_name('unknown_field', FEATURE_DOMAINS) is None
    assert parse_name('synthesis_', FEATURE_DOMAINS) is None


def test_match_key_longest_match_and_exclusions():
    mapping = {'water': {}, 'water_ethanol': {}, 'water_ethanol_history': {}}
    assert match_key(mapping, ['water', 'ethanol', 'dH']) == ('water_ethanol', ('dH',))
    key, rest = match_key(mapping, ['water', 'ethanol', 'history', 'x'],
                          exclude=['water_ethanol_history'])
    assert key == 'water_ethanol'
    assert rest == ('history', 'x')


def test_discover_features_order(sample):
    names = discover_features(sample)
    assert names[:2] == ['synthesis_temp', 'synthesis_time']
    assert names.index('ftir_index_esterification_degree') < names.index('ftir_peak_1715')
    assert 'ftir_peak_3400.5' in names
    assert names[names.index('tga_stage1_onset'):names.index('tga_stage1_onset') + 3] == [
        'tga_stage1_onset', 'tga_stage1_endset', 'tga_stage1_weight_loss'
    ]
    assert 'dsc_heating_Tg_peak' in names
    assert 'dsc_heating_enthalpy_melting' in names
    # DSC охлаждения не обработан, нечисловые поля синтеза пропускаются
    assert not any(name.startswith('dsc_cooling') for name in names)
    assert 'synthesis_catalyst' not in names
    assert 'solubility_water_ethanol_saturation' in names
    assert not any('history' in name for name in names)


def test_discover_features_domain_filter(sample):
    names = discover_features(sample, ['synthesis', 'tga'])
    assert names and all(name.startswith(('synthesis_', 'tga_')) for name in names)


def test_resolve_feature_values(sample):
    assert resolve_feature(sample, 'synthesis_temp') == 70.0
    assert resolve_feature(sample, 'ftir_index_esterification_degree') == pytest.approx(0.7)
    assert resolve_feature(sample, 'tga_stage2_onset') == 350.0
    assert resolve_feature(sample, 'tga_stage1_weight_loss') == pytest.approx(12.3)
    assert resolve_feature(sample, 'tga_temp_T50') == 390.0
    assert resolve_feature(sample, 'dsc_heating_Tg_onset') == 30.0
    assert resolve_feature(sample, 'dsc_heating_enthalpy_melting') == 13.0
    assert resolve_feature(sample, 'solubility_water_ethanol_vant_hoff_dH') == 23.0
    assert resolve_feature(sample, 'solubility_water_ethanol_thermo_dG') == pytest.approx(-5.7)
    assert resolve_feature(sample, 'solubility_water_ethanol_saturation') == pytest.approx(0.33)


def test_resolve_feature_is_idempotent(sample):
    for name in discover_features(sample):
        first = resolve_feature(sample, name)
        second = resolve_feature(sample, name)
        assert first == second or (math.isnan(first) and math.isnan(second))


def test_nearest_peak_intensity(sample):
    # Ближайший пик к 1710 это 1715
    assert resolve_feature(sample, 'ftir_peak_1710') == pytest.approx(0.87)
    assert resolve_feature(sample, 'ftir_peak_1000') == pytest.approx(0.4)


def test_tga_stage_out_of_range_is_nan(sample):
    assert math.isnan(resolve_feature(sample, 'tga_stage3_onset'))
    assert math.isnan(resolve_feature(sample, 'tga_stage0_onset'))
    assert math.isnan(resolve_feature(sample, 'tga_stage1_unknown'))


@pytest.mark.parametrize('name', [
    'ftir_index_esterification_degree',
    'ftir_peak_1715',
    'solubility_toluene_vant_hoff_dH',
    'dsc_heating_Tm_peak',
    'dsc_cooling_Tc_peak',
    'not_a_feature',
])
def test_missing_measurement_resolves_to_nan(name):
    sample = make_sample(70.0, 3.0, with_ftir=False)
    assert math.isnan(resolve_feature(sample, name))


def test_resolve_on_non_mapping_is_nan():
    assert math.isnan(resolve_feature(None, 'synthesis_temp'))
    assert math.isnan(resolve_property([], 'synthesis_yield'))


def test_discover_and_resolve_properties(sample):
    names = discover_properties(sample)
    assert names == ['synthesis_yield', 'solubility_max_solubility',
                     'solubility_combined_mean_dH', 'other_hardness']
    assert resolve_property(sample, 'synthesis_yield') == pytest.approx(141.5)
    assert resolve_property(sample, 'solubility_combined_mean_dH') == 24.0
    assert resolve_property(sample, 'solubility_max_solubility') == pytest.approx(0.57)
    assert math.isnan(resolve_property(sample, 'dsc_Tg'))


def test_solubility_property_explicit_solvent_form():
    sample = make_sample(70.0, 3.0)
    sample['properties']['solubility_derived']['water'] = {'dH': 18.5}
    assert resolve_property(sample, 'solubility_water_dH') == 18.5
    assert resolve_property(sample, 'solubility_solvent_water_dH') == 18.5


def test_extract_scenario_b_missing_ftir_gives_nan(sample):
    no_ftir = make_sample(80.0, 4.0, with_ftir=False)
    features, properties, feature_names, property_names = extract_features(
        [sample, no_ftir], input_features=['synthesis_temp', 'ftir_index_oh_ratio']
    )
    assert feature_names == ['synthesis_temp', 'ftir_index_oh_ratio']
    assert features.shape == (2, 2)
    assert features[0, 1] == pytest.approx(1.0 / 3.0)
    assert np.isnan(features[1, 1])
    assert properties.shape == (2, len(property_names))


def test_extract_column_order_is_stable(samples):
    first = extract_features(samples)
    second = extract_features(samples)
    assert first[2] == second[2]
    assert first[3] == second[3]
    np.testing.assert_array_equal(first[0], second[0])


def test_allow_list_keeps_requested_order(samples):
    _, _, feature_names, property_names = extract_features(
        samples, target_properties=['other_hardness', 'synthesis_yield'],
        input_features=['synthesis_time', 'synthesis_temp']
    )
    assert feature_names == ['synthesis_time', 'synthesis_temp']
    assert property_names == ['other_hardness', 'synthesis_yield']


def test_allow_list_with_no_valid_names_raises(samples):
    with pytest.raises(ArgumentError):
        extract_features(samples, input_features=['bogus_feature'])
    with pytest.raises(ArgumentError):
        extract_features(samples, target_properties=['bogus_property'])


def test_allow_list_mixed_names_warns(samples, caplog):
    _, _, feature_names, _ = extract_features(samples, input_features=['synthesis_temp', 'bogus_feature'])
    assert feature_names == ['synthesis_temp']
    assert any('bogus_feature' in record.getMessage() for record in caplog.records)


def test_empty_allow_list_means_no_filter(samples):
    _, _, feature_names, _ = extract_features(samples, input_features=[])
    assert feature_names == discover_features(samples[0])


@pytest.mark.parametrize('bad', [None, [], (), 'sample', 42, [{'synthesis': {}}, 'oops']])
def test_bad_sample_collections_raise(bad):
    with pytest.raises(ArgumentError):
        extract_features(bad)


def test_single_sample_mapping_is_accepted(sample):
    features, _, feature_names, _ = extract_features(sample)
    assert features.shape == (1, len(feature_names))


def test_feature_info_counts_domains(samples):
    manager = FeatureManager()
    features, _, feature_names, property_names = manager.extract(samples)
    info = manager.get_feature_info(feature_names, features)
    assert info['total_features'] == len(feature_names)
    assert info['synthesis_count'] == 2
    assert info['tga_count'] == 8
    assert manager.get_property_info(property_names)['solubility_count'] == 2
