#!/usr/bin/env python3
"""
🔮 PropertyPredictor - предсказание свойств новых образцов

Признаки извлекаются строго по списку имён из обучения, применяется
сохранённая стандартизация, для каждого свойства выбирается лучшая
(или заданная) модель, предсказания и доверительные интервалы
возвращаются в исходных единицах.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ..features.feature_manager import FeatureManager
from ..utils.config import Config
from ..utils.logger import get_logger
from ..utils.validators import ModelValidator, SampleValidator
from .records import ConfidenceInterval, MetricsRecord, ModelRecord, PropertyPrediction, TrainingResults

Predictions = Dict[str, PropertyPrediction]
Confidence = Dict[str, ConfidenceInterval]


class PropertyPredictor:
    """Предсказание свойств по обученным моделям"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.feature_manager = FeatureManager(self.config)
        self.logger = get_logger('PropertyPredictor', level=self.config.log_level)

    def select_model(self, property_name: str, models: Dict[str, ModelRecord],
                     metrics: Dict[str, MetricsRecord], model_type: str = 'best') -> Optional[str]:
        """
        Выбор семейства для свойства

        'best' - максимальный средний R² кросс-валидации (при отсутствии
        R² - минимальный средний RMSE); иначе семейство должно существовать.
        """
        if model_type != 'best':
            if model_type not in models:
                self.logger.warning(
                    f"⚠️ Модель '{model_type}' для свойства {property_name} не обучена, свойство пропущено"
                )
                return None
            return model_type

        candidates = [name for name in models if name in metrics]
        if not candidates:
            return next(iter(models), None)

        with_r2 = [name for name in candidates if np.isfinite(metrics[name].r2_mean)]
        if with_r2:
            return max(with_r2, key=lambda name: metrics[name].r2_mean)
        return min(candidates, key=lambda name: metrics[name].rmse_mean
                   if np.isfinite(metrics[name].rmse_mean) else math.inf)

    def std_error(self, model_type: str, metrics: Optional[MetricsRecord]) -> float:
        """
        Стандартная ошибка предсказания (в стандартизованных единицах)

        regression: std RMSE по фолдам, если она есть; иначе средний RMSE;
        в крайнем случае 1.25 × MAE.
        """
        if metrics is None:
            return math.nan
        if model_type == 'regression' and np.isfinite(metrics.rmse_std) and metrics.rmse_std > 0:
            return float(metrics.rmse_std)
        if np.isfinite(metrics.rmse_mean):
            return float(metrics.rmse_mean)
        if np.isfinite(metrics.mae_mean):
            return float(self.config.prediction.mae_to_rmse * metrics.mae_mean)
        return math.nan

    def predict(self, samples: Any, models: Dict[str, Dict[str, ModelRecord]],
                results: TrainingResults, model_type: Optional[str] = None,
                confidence_interval: Optional[bool] = None,
                confidence_level: Optional[float] = None) -> Tuple[Predictions, Confidence]:
        """
        Предсказание свойств

        Args:
            samples: Образец или список образцов
            models: Модели из обучения
            results: Результаты обучения
            model_type: 'best' или имя семейства
            confidence_interval: Считать ли доверительные интервалы
            confidence_level: Уровень доверия

        Returns:
            (predictions, confidence) - словари по именам свойств
        """
        settings = self.config.prediction
        model_type = model_type or settings.model_type
        confidence_interval = settings.confidence_interval if confidence_interval is None else confidence_interval
        confidence_level = settings.confidence_level if confidence_level is None else confidence_level

        if confidence_interval:
            ModelValidator.validate_confidence_level(confidence_level)
        samples = SampleValidator.normalize_samples(samples)
        feature_names = results.feature_names

        try:
            discovered, _ = self.feature_manager.discover(samples[0])
            known = set(discovered)
            missing = [name for name in feature_names if name not in known]
            if missing:
                self.logger.warning(
                    f"⚠️ В новых образцах нет {len(missing)} признаков из обучения: "
                    f"{', '.join(missing)}; их значения будут NaN"
                )

            features = self.feature_manager.build_features(samples, feature_names)
            ModelValidator.validate_prediction_input(features, len(feature_names))
            self.feature_manager.warn_missing(features, 'признаков')
            X = results.standardization.transform_features(features)
            incomplete = int((~np.all(np.isfinite(X), axis=1)).sum())
            if incomplete:
                self.logger.warning(f"⚠️ {incomplete} образцов с пропущенными признаками получат NaN")

            z = float(stats.norm.ppf(1 - (1 - confidence_level) / 2))
            predictions: Predictions = {}
            confidence: Confidence = {}

            for index, property_name in enumerate(results.property_names):
                by_type = models.get(property_name) or {}
                if not by_type:
                    self.logger.warning(f"⚠️ Для свойства {property_name} нет обученных моделей, пропущено")
                    continue

                metrics = results.model_metrics.get(property_name, {})
                chosen = self.select_model(property_name, by_type, metrics, model_type)
                if chosen is None:
                    continue
                model = by_type[chosen]

                try:
                    X_model = self.model_inputs(model, feature_names, X)
                    if X_model is None:
                        continue

                    valid = np.all(np.isfinite(X_model), axis=1)
                    y_std = np.full(len(samples), np.nan)
                    if valid.any():
                        y_std[valid] = model.predict(X_model[valid])
                    values = results.standardization.inverse_property(y_std, index)

                    interval = None
                    if confidence_interval:
                        se = self.std_error(chosen, metrics.get(chosen))
                        lower = results.standardization.inverse_property(y_std - z * se, index)
                        upper = results.standardization.inverse_property(y_std + z * se, index)
                        half_width_scale = results.standardization.property_std[index] \
                            if results.standardized else 1.0
                        interval = ConfidenceInterval(
                            lower=lower, upper=upper, level=confidence_level,
                            std_error=float(se * half_width_scale), z=z
                        )

                except Exception as e:
                    self.logger.warning(f"⚠️ Предсказание {property_name} моделью {chosen} не удалось: {e}")
                    continue

                predictions[property_name] = PropertyPrediction(values=values, model_type=chosen)
                if interval is not None:
                    confidence[property_name] = interval
                self.logger.log_prediction(property_name, chosen, len(samples))

            self.logger.info(f"🔮 Предсказано {len(predictions)} свойств для {len(samples)} образцов")
            return predictions, confidence

        except Exception as e:
            self.logger.error(f"❌ Ошибка предсказания: {e}")
            raise

    def model_inputs(self, model: ModelRecord, feature_names: List[str],
                     X: np.ndarray) -> Optional[np.ndarray]:
        """
        Колонки X в порядке признаков модели

        Если модель обучена на другом списке, колонки сопоставляются по имени
        (стандартизация уже применена по результатам обучения). Признак модели,
        которого нет в результатах, делает модель непригодной: None.
        """
        if model.feature_names == feature_names:
            return X

        self.logger.warning(
            f"⚠️ Модель {model.model_type} для {model.property_name} обучена на другом списке признаков"
        )
        positions = {name: i for i, name in enumerate(feature_names)}
        absent = [name for name in model.feature_names if name not in positions]
        if absent:
            self.logger.warning(
                f"⚠️ Признаков модели нет в результатах обучения ({', '.join(absent)}), "
                f"свойство {model.property_name} пропущено"
            )
            return None
        return X[:, [positions[name] for name in model.feature_names]]

    def to_frame(self, predictions: Predictions, confidence: Optional[Confidence] = None) -> pd.DataFrame:
        """Предсказания (и интервалы) в одной таблице, строка на образец"""
        columns: Dict[str, np.ndarray] = {}
        for property_name, prediction in predictions.items():
            columns[property_name] = prediction.values
            if confidence and property_name in confidence:
                columns[f"{property_name}_lower"] = confidence[property_name].lower
                columns[f"{property_name}_upper"] = confidence[property_name].upper
        return pd.DataFrame(columns)
