"""Предсказания: выбор модели, доверительные интервалы, пропуски."""

import math

import numpy as np
import pytest

from conftest import make_sample
from pgcit_ml import predict_properties, train_models
from pgcit_ml.core.predictor import PropertyPredictor
from pgcit_ml.core.records import (
    FittedModel, MetricsRecord, ModelRecord, StandardizationRecord, TrainingResults
)
from pgcit_ml.utils.validators import ArgumentError

FEATURES = ['synthesis_temp']
PROPERTY = 'synthesis_yield'
Z_95 = 1.959964


class ConstantEstimator:
    def __init__(self, value):
        self.value = value

    def predict(self, X):
        return np.full(len(X), self.value)


def metrics(r2_mean=math.nan, rmse_mean=math.nan, rmse_std=math.nan, mae_mean=math.nan):
    return MetricsRecord(rmse_mean=rmse_mean, rmse_std=rmse_std, r2_mean=r2_mean, r2_std=0.0,
                         mae_mean=mae_mean, mae_std=0.0)


def model(model_type, value):
    return ModelRecord(model_type=model_type, property_name=PROPERTY, feature_names=list(FEATURES),
                       fitted=FittedModel(ConstantEstimator(value)))


def build(by_type, standardization=None):
    """(models, results) для одного свойства из {семейство: (значение, метрики)}"""
    if standardization is None:
        standardization = StandardizationRecord(False, np.zeros(1), np.ones(1), np.zeros(1), np.ones(1))
    results = TrainingResults(
        feature_names=list(FEATURES), property_names=[PROPERTY], validation_method='kfold',
        validation_param=5, standardization=standardization,
        model_metrics={PROPERTY: {name: record for name, (_, record) in by_type.items()}},
    )
    models = {PROPERTY: {name: model(name, value) for name, (value, _) in by_type.items()}}
    return models, results


@pytest.fixture
def new_samples():
    return [make_sample(70.0, 3.0), make_sample(80.0, 4.0)]


def test_scenario_c_best_model_by_r2(new_samples):
    models, results = build({
        'regression': (1.0, metrics(r2_mean=0.6, rmse_mean=1.0)),
        'svm': (2.0, metrics(r2_mean=0.9, rmse_mean=0.5)),
    })
    predictions, _ = predict_properties(new_samples, models, results)
    assert predictions[PROPERTY].model_type == 'svm'
    np.testing.assert_allclose(predictions[PROPERTY].values, [2.0, 2.0])


def test_best_falls_back_to_rmse_without_r2():
    predictor = PropertyPredictor()
    by_metrics = {'regression': metrics(rmse_mean=1.5), 'ann': metrics(rmse_mean=0.7)}
    by_model = {'regression': model('regression', 0.0), 'ann': model('ann', 0.0)}
    assert predictor.select_model(PROPERTY, by_model, by_metrics) == 'ann'


def test_explicit_model_type(new_samples):
    models, results = build({
        'regression': (1.0, metrics(r2_mean=0.6, rmse_mean=1.0)),
        'svm': (2.0, metrics(r2_mean=0.9, rmse_mean=0.5)),
    })
    predictions, _ = predict_properties(new_samples, models, results, model_type='regression')
    assert predictions[PROPERTY].model_type == 'regression'


def test_missing_explicit_model_type_skips_property(new_samples, caplog):
    models, results = build({'regression': (1.0, metrics(r2_mean=0.6, rmse_mean=1.0))})
    predictions, confidence = predict_properties(new_samples, models, results, model_type='ann')
    assert predictions == {}
    assert confidence == {}
    assert any("'ann'" in record.getMessage() for record in caplog.records)


def test_scenario_d_half_width(new_samples):
    sigma = 2.0
    models, results = build({'svm': (5.0, metrics(r2_mean=0.9, rmse_mean=sigma, rmse_std=0.3))})
    _, confidence = predict_properties(new_samples, models, results, confidence_level=0.95)
    interval = confidence[PROPERTY]
    assert interval.z == pytest.approx(Z_95, abs=1e-6)
    np.testing.assert_allclose(interval.half_width, Z_95 * sigma, rtol=1e-6)
    np.testing.assert_allclose(interval.lower, 5.0 - Z_95 * sigma, rtol=1e-6)
    assert interval.intervals.shape == (2, 2)


def test_regression_uses_rmse_std(new_samples):
    models, results = build({'regression': (5.0, metrics(r2_mean=0.9, rmse_mean=3.0, rmse_std=0.5))})
    _, confidence = predict_properties(new_samples, models, results)
    assert confidence[PROPERTY].std_error == pytest.approx(0.5)


def test_mae_fallback_for_std_error():
    predictor = PropertyPredictor()
    assert predictor.std_error('svm', metrics(mae_mean=2.0)) == pytest.approx(2.5)
    assert math.isnan(predictor.std_error('svm', None))


def test_interval_is_destandardized(new_samples):
    standardization = StandardizationRecord(True, np.array([70.0]), np.array([10.0]),
                                            np.array([100.0]), np.array([10.0]))
    models, results = build({'svm': (0.5, metrics(r2_mean=0.9, rmse_mean=0.2))}, standardization)
    predictions, confidence = predict_properties(new_samples, models, results)
    np.testing.assert_allclose(predictions[PROPERTY].values, [105.0, 105.0])
    np.testing.assert_allclose(confidence[PROPERTY].half_width, Z_95 * 0.2 * 10.0, rtol=1e-6)
    assert confidence[PROPERTY].std_error == pytest.approx(2.0)


def test_confidence_interval_can_be_disabled(new_samples):
    models, results = build({'svm': (1.0, metrics(r2_mean=0.9, rmse_mean=0.2))})
    predictions, confidence = predict_properties(new_samples, models, results,
                                                 confidence_interval=False)
    assert PROPERTY in predictions
    assert confidence == {}


def test_rows_with_missing_features_get_nan(new_samples, caplog):
    del new_samples[1]['synthesis']['temp']
    models, results = build({'svm': (1.0, metrics(r2_mean=0.9, rmse_mean=0.2))})
    predictions, confidence = predict_properties(new_samples, models, results)
    values = predictions[PROPERTY].values
    assert values[0] == pytest.approx(1.0)
    assert np.isnan(values[1])
    assert np.isnan(confidence[PROPERTY].upper[1])


def test_no_missing_feature_warning_for_allow_listed_training(new_samples, caplog):
    models, results = build({'svm': (1.0, metrics(r2_mean=0.9, rmse_mean=0.2))})
    predict_properties(new_samples, models, results)
    assert not any('из обучения' in record.getMessage() for record in caplog.records)


def test_missing_trained_feature_is_named(new_samples, caplog):
    del new_samples[0]['synthesis']['temp']
    new_samples[0]['synthesis']['pressure'] = 1.5
    models, results = build({'svm': (1.0, metrics(r2_mean=0.9, rmse_mean=0.2))})
    predictions, _ = predict_properties(new_samples, models, results)
    warnings = [r.getMessage() for r in caplog.records if r.levelname == 'WARNING']
    assert any('из обучения' in message and 'synthesis_temp' in message for message in warnings)
    assert np.isnan(predictions[PROPERTY].values[0])
    assert predictions[PROPERTY].values[1] == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# модели и результаты из разных запусков обучения
# ---------------------------------------------------------------------------

TWO_PROPERTIES = ['synthesis_yield', 'other_hardness']


def train_svm(samples, features):
    return train_models(samples, target_properties=TWO_PROPERTIES, input_features=features,
                        model_types=['svm'], validation_param=4, optimize_hyperparams=False)


@pytest.fixture
def one_feature_run(samples):
    return train_svm(samples, ['synthesis_temp'])


@pytest.fixture
def two_feature_run(samples):
    return train_svm(samples, ['synthesis_temp', 'synthesis_time'])


def test_model_columns_are_matched_by_name(samples, one_feature_run, two_feature_run, caplog):
    models, results = one_feature_run
    _, other_results = two_feature_run
    expected, _ = predict_properties(samples, models, results)
    predictions, _ = predict_properties(samples, models, other_results)

    assert set(predictions) == set(TWO_PROPERTIES)
    for name in TWO_PROPERTIES:
        np.testing.assert_allclose(predictions[name].values, expected[name].values)
    assert any('другом списке признаков' in record.getMessage() for record in caplog.records)


def test_model_with_unknown_features_is_skipped(samples, one_feature_run, two_feature_run, caplog):
    _, results = one_feature_run
    models, _ = two_feature_run
    predictions, confidence = predict_properties(samples, models, results)
    assert predictions == {}
    assert confidence == {}
    assert any('synthesis_time' in record.getMessage() and record.levelname == 'WARNING'
               for record in caplog.records)


class ExplodingEstimator:
    def predict(self, X):
        raise RuntimeError("broken estimator")


def test_failing_model_does_not_stop_other_properties(samples, two_feature_run, caplog):
    models, results = two_feature_run
    models['synthesis_yield']['svm'].fitted = FittedModel(ExplodingEstimator())
    predictions, confidence = predict_properties(samples, models, results)
    assert list(predictions) == ['other_hardness']
    assert list(confidence) == ['other_hardness']
    assert any('broken estimator' in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize('level', [0.0, 1.0, 1.5])
def test_invalid_confidence_level_raises(new_samples, level):
    models, results = build({'svm': (1.0, metrics(r2_mean=0.9, rmse_mean=0.2))})
    with pytest.raises(ArgumentError):
        predict_properties(new_samples, models, results, confidence_level=level)


def test_empty_samples_raise():
    models, results = build({'svm': (1.0, metrics(r2_mean=0.9, rmse_mean=0.2))})
    with pytest.raises(ArgumentError):
        predict_properties([], models, results)


def test_to_frame_columns(new_samples):
    models, results = build({'svm': (1.0, metrics(r2_mean=0.9, rmse_mean=0.2))})
    predictor = PropertyPredictor()
    predictions, confidence = predictor.predict(new_samples, models, results)
    frame = predictor.to_frame(predictions, confidence)
    assert list(frame.columns) == [PROPERTY, f"{PROPERTY}_lower", f"{PROPERTY}_upper"]
    assert len(frame) == 2
