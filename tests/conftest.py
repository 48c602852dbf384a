"""Общие фикстуры: синтетические образцы PGCit."""

import pytest

from pgcit_ml.utils.config import Config, TrainingConfig

TEMPS = [60.0, 65.0, 70.0, 75.0, 80.0, 85.0, 90.0, 95.0]
TIMES = [2.0, 5.0, 3.0, 6.0, 4.0, 2.5, 5.5, 3.5]
NOISE = [0.01, -0.02, 0.015, -0.01, 0.005, -0.005, 0.02, -0.015]


def make_sample(temp, time, noise=0.0, with_ftir=True, with_solubility=True):
    """Образец с синтезом, FTIR, TGA, DSC, растворимостью и свойствами"""
    sample = {
        'id': f"PGCit-{int(temp)}-{time}",
        'synthesis': {'temp': temp, 'time': time, 'catalyst': 'none'},
        'measurements': {
            'tga': {
                'processed': True,
                'decomposition_stages': [
                    {'onset_temperature': 150.0 + temp, 'endset_temperature': 220.0 + temp,
                     'weight_loss_percent': 12.0 + 0.1 * time},
                    {'onset_temperature': 280.0 + temp, 'endset_temperature': 390.0 + temp,
                     'weight_loss_percent': 55.0 - 0.2 * time},
                ],
                'characteristic_temperatures': {'T5': 180.0 + temp, 'T50': 320.0 + temp},
            },
            'dsc_heating': {
                'processed': True,
                'transitions': {
                    'Tg': {'onset': temp - 40.0, 'peak': temp - 35.0, 'endset': temp - 30.0},
                },
                'enthalpies': {'melting': 10.0 + time},
            },
            'dsc_cooling': {'processed': False},
        },
        'properties': {
            'synthesis': {'yield': 2.0 * temp + 0.5 * time + noise},
            'other': {'hardness': 0.1 * temp - time + 3 * noise},
        },
    }
    if with_ftir:
        sample['measurements']['ftir'] = {
            'processed': True,
            'spectral_indices': {'esterification_degree': 0.01 * temp, 'oh_ratio': 1.0 / time},
            'peaks': [
                {'wavenumber': 1715.0, 'intensity': 0.8 + 0.001 * temp},
                {'wavenumber': 1050.0, 'intensity': 0.4},
                {'wavenumber': 3400.5, 'intensity': 0.6},
            ],
        }
    if with_solubility:
        sample['measurements']['solubility'] = {
            'water_ethanol': {
                'processed': True,
                'vant_hoff_params': {'dH': 20.0 + time, 'dS': 0.05},
                'thermodynamic_params': {'dG': -5.0 - 0.01 * temp},
                'additional_params': {'saturation': 0.3 + 0.01 * time},
            },
            'water_ethanol_history': {'processed': True, 'additional_params': {'saturation': 9.9}},
        }
        sample['properties']['solubility_derived'] = {
            'max_solubility': 0.5 + 0.001 * temp,
            'combined': {'mean_dH': 21.0 + time},
        }
    return sample


@pytest.fixture
def sample():
    return make_sample(70.0, 3.0)


@pytest.fixture
def samples():
    return [make_sample(t, h, n) for t, h, n in zip(TEMPS, TIMES, NOISE)]


@pytest.fixture
def linear_samples():
    """Пять образцов: yield = 2*temp + 0.5*time + шум"""
    return [make_sample(t, h, n) for t, h, n in zip(TEMPS[:5], TIMES[:5], NOISE[:5])]


@pytest.fixture
def fast_config(tmp_path):
    return Config(
        models_root=str(tmp_path / 'models'),
        training=TrainingConfig(
            model_types=['regression', 'svm'],
            optimize_hyperparams=False,
            validation_param=4,
        ),
    )
