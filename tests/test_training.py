"""Обучение моделей: сценарий A, отказоустойчивость, разбиения."""

import numpy as np
import pytest
from scipy import stats

from conftest import make_sample
from pgcit_ml import train_models
from pgcit_ml.core import model_families
from pgcit_ml.core.metrics import r2
from pgcit_ml.core.model_families import BaseRegressor
from pgcit_ml.core.model_manager import ModelManager
from pgcit_ml.core.predictor import PropertyPredictor
from pgcit_ml.core.validation import make_partition
from pgcit_ml.systems import PropertySystem
from pgcit_ml.utils.config import Config, TrainingConfig
from pgcit_ml.utils.validators import ArgumentError

SYNTHESIS_FEATURES = ['synthesis_temp', 'synthesis_time']


def test_scenario_a_recovers_linear_relation(linear_samples):
    models, results = train_models(
        linear_samples, target_properties=['synthesis_yield'], input_features=SYNTHESIS_FEATURES,
        model_types=['regression'], standardize=False, optimize_hyperparams=False
    )
    model = models['synthesis_yield']['regression']
    coefficients = model.details['coefficients']
    assert coefficients[0] == pytest.approx(2.0, abs=0.05)
    assert coefficients[1] == pytest.approx(0.5, abs=0.05)
    assert model.details['rsquared'] > 0.8

    # Предсказание на обучающих образцах воспроизводит качество модели
    predictions, _ = PropertyPredictor().predict(linear_samples, models, results, 'regression',
                                                 confidence_interval=False)
    y_true = np.array([s['properties']['synthesis']['yield'] for s in linear_samples])
    assert r2(y_true, predictions['synthesis_yield'].values) > 0.8


def test_scenario_a_standardized_metrics(linear_samples):
    _, results = train_models(
        linear_samples, target_properties=['synthesis_yield'], input_features=SYNTHESIS_FEATURES,
        model_types=['regression'], optimize_hyperparams=False
    )
    metrics = results.model_metrics['synthesis_yield']['regression']
    # 5 фолдов по одному образцу: R² на фолде не определён, RMSE мал
    assert len(metrics.fold_scores) == 5
    assert metrics.rmse_mean < 0.1
    assert results.standardized


def test_too_few_samples_raises(linear_samples):
    with pytest.raises(ArgumentError):
        train_models(linear_samples[:2], input_features=SYNTHESIS_FEATURES)


def test_unknown_model_type_is_skipped(samples, caplog):
    models, results = train_models(
        samples, target_properties=['synthesis_yield'], input_features=SYNTHESIS_FEATURES,
        model_types=['regression', 'gradient_magic'], optimize_hyperparams=False
    )
    assert list(models['synthesis_yield']) == ['regression']
    assert any('gradient_magic' in warning for warning in results.warnings)
    assert any('gradient_magic' in record.getMessage() for record in caplog.records)


class ExplodingFamily(BaseRegressor):
    name = 'svm'

    def default_params(self, X, y):
        return {}

    def build(self, params):
        raise RuntimeError("solver exploded")


def test_family_failure_is_isolated(samples, monkeypatch):
    monkeypatch.setitem(model_families.MODEL_FAMILIES, 'svm', ExplodingFamily)
    models, results = train_models(
        samples, target_properties=['synthesis_yield', 'other_hardness'],
        input_features=SYNTHESIS_FEATURES, model_types=['regression', 'svm'],
        optimize_hyperparams=False
    )
    for property_name in ('synthesis_yield', 'other_hardness'):
        assert list(models[property_name]) == ['regression']
        assert 'svm' not in results.model_metrics[property_name]
    assert sum('solver exploded' in warning for warning in results.warnings) == 2


def test_partition_is_shared_between_families(samples):
    _, results = train_models(
        samples, target_properties=['synthesis_yield'], input_features=SYNTHESIS_FEATURES,
        model_types=['regression', 'svm'], validation_param=4, optimize_hyperparams=False
    )
    by_type = results.model_metrics['synthesis_yield']
    assert by_type['regression'].cv_partition is by_type['svm'].cv_partition
    assert by_type['svm'].cv_partition.n_folds == 4


def test_rows_with_nan_property_are_dropped(samples):
    samples[3]['properties']['other'].pop('hardness')
    models, results = train_models(
        samples, target_properties=['synthesis_yield', 'other_hardness'],
        input_features=SYNTHESIS_FEATURES, model_types=['regression'], optimize_hyperparams=False
    )
    assert set(models) == {'synthesis_yield', 'other_hardness'}
    assert results.model_metrics['other_hardness']['regression'].cv_partition.n_samples == 7
    assert results.model_metrics['synthesis_yield']['regression'].cv_partition.n_samples == 8
    assert any('other_hardness' in warning for warning in results.warnings)


def test_property_with_too_few_rows_is_skipped(samples):
    for s in samples[2:]:
        s['properties']['other'].pop('hardness')
    models, results = train_models(
        samples, target_properties=['synthesis_yield', 'other_hardness'],
        input_features=SYNTHESIS_FEATURES, model_types=['regression'], optimize_hyperparams=False
    )
    assert 'other_hardness' not in models
    assert 'other_hardness' not in results.model_metrics
    assert 'synthesis_yield' in models


def test_holdout_validation(samples):
    _, results = train_models(
        samples, target_properties=['synthesis_yield'], input_features=SYNTHESIS_FEATURES,
        model_types=['regression'], validation_method='holdout', validation_param=0.25,
        optimize_hyperparams=False
    )
    partition = results.model_metrics['synthesis_yield']['regression'].cv_partition
    assert partition.n_folds == 1
    assert partition.describe()['test_sizes'] == [2]


def test_importance_tables_are_normalized(samples):
    _, results = train_models(
        samples, target_properties=['synthesis_yield'], input_features=SYNTHESIS_FEATURES,
        model_types=['regression', 'svm'], optimize_hyperparams=False
    )
    tables = results.feature_importance['synthesis_yield']
    assert set(tables) == {'regression', 'svm', 'average'}
    for table in tables.values():
        assert list(table.columns) == ['feature', 'importance']
        assert table['importance'].sum() == pytest.approx(1.0)
        assert table['importance'].is_monotonic_decreasing
    # yield определяется в основном температурой
    assert tables['regression'].iloc[0]['feature'] == 'synthesis_temp'


def test_parallel_training_matches_sequential(samples):
    def make_config(n_jobs):
        return Config(training=TrainingConfig(model_types=['regression', 'svm'],
                                              optimize_hyperparams=False, n_jobs=n_jobs))

    sequential = PropertySystem(make_config(1))
    parallel = PropertySystem(make_config(4))

    _, seq_results = sequential.train_models(samples, ['synthesis_yield', 'other_hardness'],
                                             SYNTHESIS_FEATURES)
    _, par_results = parallel.train_models(samples, ['synthesis_yield', 'other_hardness'],
                                           SYNTHESIS_FEATURES)
    assert seq_results.metrics_frame().equals(par_results.metrics_frame())


def test_exhausted_time_budget_records_failures(samples):
    config = Config(training=TrainingConfig(model_types=['regression'], optimize_hyperparams=False,
                                            time_budget=1e-9))
    models, results = PropertySystem(config).train_models(samples, ['synthesis_yield'],
                                                          SYNTHESIS_FEATURES)
    assert models == {}
    assert any('regression' in warning for warning in results.warnings)


def test_optimized_training_runs_optuna(samples):
    config = Config(training=TrainingConfig(model_types=['regression', 'svm'], svm_trials=3,
                                            validation_param=3))
    models, results = PropertySystem(config).train_models(samples, ['synthesis_yield'],
                                                          SYNTHESIS_FEATURES)
    svm_params = results.model_metrics['synthesis_yield']['svm'].best_params
    assert {'C', 'epsilon', 'kernel'} <= set(svm_params)
    assert models['synthesis_yield']['regression'].params == {'stepwise': True}


def test_run_experiment_and_compare(samples, fast_config):
    system = PropertySystem(fast_config)
    models, results = system.run_experiment(samples, ['synthesis_yield'], SYNTHESIS_FEATURES,
                                            save_as='experiment')
    comparison = system.compare_models(results)
    assert set(comparison['model_type']) == {'regression', 'svm'}
    assert system.trained_properties(models) == ['synthesis_yield']
    info = system.get_model_info(models, results, 'synthesis_yield')
    assert info['features_count'] == 2
    assert system.get_model_info(models, results, 'other_hardness') is None
    assert [b['name'] for b in system.model_manager.list_bundles()] == ['experiment']


def test_model_manager_rejects_too_few_rows():
    manager = ModelManager()
    features = np.array([[1.0], [2.0]])
    properties = np.array([[1.0], [2.0]])
    with pytest.raises(ArgumentError):
        manager.train(features, properties, ['synthesis_temp'], ['synthesis_yield'])


def test_missing_feature_rows_are_excluded():
    samples = [make_sample(60.0 + 5 * i, 2.0 + (i % 3)) for i in range(6)]
    del samples[1]['synthesis']['time']
    models, results = train_models(
        samples, target_properties=['synthesis_yield'], input_features=SYNTHESIS_FEATURES,
        model_types=['regression'], optimize_hyperparams=False
    )
    assert results.model_metrics['synthesis_yield']['regression'].cv_partition.n_samples == 5
    assert 'synthesis_yield' in models


@pytest.mark.parametrize('kwargs', [{'validation_method': 'loo'}, {'validation_param': 0}])
def test_invalid_validation_arguments_raise(samples, kwargs):
    with pytest.raises(ArgumentError):
        train_models(samples, target_properties=['synthesis_yield'],
                     input_features=SYNTHESIS_FEATURES, model_types=['regression'], **kwargs)


@pytest.mark.parametrize('optimize', [False, True])
def test_ann_and_ensemble_training(samples, optimize):
    config = Config(training=TrainingConfig(
        model_types=['ann', 'ensemble'], optimize_hyperparams=optimize, validation_param=3,
        ann_trials=2, ensemble_trials=2, ann_max_iter=300,
    ))
    models, results = PropertySystem(config).train_models(samples, ['synthesis_yield'],
                                                          SYNTHESIS_FEATURES)
    assert set(models['synthesis_yield']) == {'ann', 'ensemble'}
    metrics = results.model_metrics['synthesis_yield']
    assert all(np.isfinite(metrics[name].rmse_mean) for name in ('ann', 'ensemble'))

    ann = models['synthesis_yield']['ann']
    ensemble = models['synthesis_yield']['ensemble']
    assert ensemble.details['method'] in ('bag', 'boosted')
    if optimize:
        # Финальная сеть на 8 образцах обучается с разбиением 70/15/15
        assert {'width', 'activation'} <= set(metrics['ann'].best_params)
        assert 'val_rmse' in ann.details
        assert {'method', 'n_estimators', 'min_leaf'} <= set(metrics['ensemble'].best_params)
    else:
        assert ann.params == {'width': 10, 'activation': 'relu', 'divide': False}
        assert ensemble.params['method'] == 'bag'

    for table in results.feature_importance['synthesis_yield'].values():
        assert table['importance'].sum() == pytest.approx(1.0)


class OpaqueEnsemble(model_families.EnsembleFamily):
    """Ансамбль без собственной важности признаков"""

    def importance(self, fitted, X, y):
        return None


def test_importance_falls_back_to_spearman():
    x0 = np.arange(8.0)
    x1 = np.array([3.0, 1.0, 4.0, 1.0, 5.0, 9.0, 2.0, 6.0])
    X = np.column_stack([x0, x1])
    y = 2.0 * x0
    manager = ModelManager(Config(training=TrainingConfig(optimize_hyperparams=False)))
    partition = make_partition(len(y), 'kfold', 4)

    _, _, importance = manager.train_family(OpaqueEnsemble(manager.config.training), X, y,
                                            partition, 'synthesis_yield', SYNTHESIS_FEATURES)

    rho1 = abs(stats.spearmanr(x1, y)[0])
    np.testing.assert_allclose(importance, np.array([1.0, rho1]) / (1.0 + rho1))
