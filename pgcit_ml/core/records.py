#!/usr/bin/env python3
"""
📦 Записи результатов обучения и предсказания

Стандартизация, обученные модели, метрики кросс-валидации, результаты
обучения и структуры предсказаний.
"""

import warnings
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .validation import CVPartition


def _column_stats(matrix: np.ndarray):
    n_rows, n_cols = matrix.shape
    if n_rows == 0 or n_cols == 0:
        return np.zeros(n_cols), np.ones(n_cols)
    with warnings.catch_warnings():
        # Колонки целиком из NaN и из одного значения
        warnings.simplefilter("ignore", RuntimeWarning)
        mean = np.nanmean(matrix, axis=0)
        std = np.nanstd(matrix, axis=0, ddof=1)
    mean = np.where(np.isfinite(mean), mean, 0.0)
    # Постоянная колонка: делим на 1, а не на 0
    std = np.where(np.isfinite(std) & (std > 0), std, 1.0)
    return mean, std


@dataclass
class StandardizationRecord:
    """Параметры z-преобразования признаков и свойств (по колонкам)"""
    enabled: bool
    feature_mean: np.ndarray
    feature_std: np.ndarray
    property_mean: np.ndarray
    property_std: np.ndarray

    @classmethod
    def fit(cls, features: np.ndarray, properties: np.ndarray,
            enabled: bool = True) -> 'StandardizationRecord':
        """Оценка среднего и std по всему набору (NaN пропускаются)"""
        if enabled:
            feature_mean, feature_std = _column_stats(features)
            property_mean, property_std = _column_stats(properties)
        else:
            feature_mean, feature_std = np.zeros(features.shape[1]), np.ones(features.shape[1])
            property_mean, property_std = np.zeros(properties.shape[1]), np.ones(properties.shape[1])
        return cls(enabled, feature_mean, feature_std, property_mean, property_std)

    def transform_features(self, features: np.ndarray) -> np.ndarray:
        if not self.enabled:
            return np.asarray(features, dtype=float)
        return (features - self.feature_mean) / self.feature_std

    def transform_properties(self, properties: np.ndarray) -> np.ndarray:
        if not self.enabled:
            return np.asarray(properties, dtype=float)
        return (properties - self.property_mean) / self.property_std

    def inverse_properties(self, properties: np.ndarray) -> np.ndarray:
        if not self.enabled:
            return np.asarray(properties, dtype=float)
        return properties * self.property_std + self.property_mean

    def inverse_property(self, values: np.ndarray, index: int) -> np.ndarray:
        """Обратное преобразование одной колонки свойства"""
        if not self.enabled:
            return np.asarray(values, dtype=float)
        return values * self.property_std[index] + self.property_mean[index]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'enabled': self.enabled,
            'feature_mean': self.feature_mean.tolist(),
            'feature_std': self.feature_std.tolist(),
            'property_mean': self.property_mean.tolist(),
            'property_std': self.property_std.tolist(),
        }


@dataclass
class FittedModel:
    """Обученный оценщик с гиперпараметрами, на которых он обучен"""
    estimator: Any
    params: Dict[str, Any] = field(default_factory=dict)
    info: Dict[str, Any] = field(default_factory=dict)

    def predict(self, X: np.ndarray) -> np.ndarray:
        return np.asarray(self.estimator.predict(X), dtype=float).ravel()


@dataclass
class ModelRecord:
    """Финальная модель для пары (свойство, семейство)"""
    model_type: str
    property_name: str
    feature_names: List[str]
    fitted: FittedModel
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def params(self) -> Dict[str, Any]:
        return self.fitted.params

    def predict(self, X: np.ndarray) -> np.ndarray:
        return self.fitted.predict(X)


@dataclass
class MetricsRecord:
    """Метрики кросс-валидации для пары (свойство, семейство)"""
    rmse_mean: float
    rmse_std: float
    r2_mean: float
    r2_std: float
    mae_mean: float
    mae_std: float
    fold_scores: List[Dict[str, float]] = field(default_factory=list)
    cv_models: List[FittedModel] = field(default_factory=list)
    cv_partition: Optional[CVPartition] = None
    best_params: Dict[str, Any] = field(default_factory=dict)

    def summary(self) -> Dict[str, float]:
        return {
            'rmse_mean': self.rmse_mean, 'rmse_std': self.rmse_std,
            'r2_mean': self.r2_mean, 'r2_std': self.r2_std,
            'mae_mean': self.mae_mean, 'mae_std': self.mae_std,
        }


@dataclass
class TaskOutcome:
    """Результат одной задачи (свойство, семейство): модель или ошибка"""
    property_name: str
    model_type: str
    model: Optional[ModelRecord] = None
    metrics: Optional[MetricsRecord] = None
    importance: Optional[np.ndarray] = None
    error: Optional[str] = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.model is not None


@dataclass
class CorrelationMatrix:
    """Корреляции признаки × свойства"""
    values: pd.DataFrame
    pvalues: pd.DataFrame
    correlation_type: str = 'spearman'


@dataclass
class TrainingResults:
    """Всё, что нужно для предсказания и анализа после обучения"""
    feature_names: List[str]
    property_names: List[str]
    validation_method: str
    validation_param: float
    standardization: StandardizationRecord
    model_metrics: Dict[str, Dict[str, MetricsRecord]] = field(default_factory=dict)
    feature_importance: Dict[str, Dict[str, pd.DataFrame]] = field(default_factory=dict)
    correlations: Optional[CorrelationMatrix] = None
    warnings: List[str] = field(default_factory=list)
    features: Optional[np.ndarray] = None
    properties: Optional[np.ndarray] = None
    train_date: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def standardized(self) -> bool:
        return self.standardization.enabled

    def trained_types(self, property_name: str) -> List[str]:
        """Семейства, успешно обученные для свойства"""
        return list(self.model_metrics.get(property_name, {}).keys())

    def metrics_frame(self) -> pd.DataFrame:
        """Сводная таблица метрик (свойство, семейство)"""
        rows = []
        for property_name, by_type in self.model_metrics.items():
            for model_type, metrics in by_type.items():
                rows.append({'property': property_name, 'model_type': model_type, **metrics.summary()})
        return pd.DataFrame(rows, columns=['property', 'model_type', 'rmse_mean', 'rmse_std',
                                           'r2_mean', 'r2_std', 'mae_mean', 'mae_std'])


@dataclass
class PropertyPrediction:
    """Предсказания одного свойства"""
    values: np.ndarray
    model_type: str


@dataclass
class ConfidenceInterval:
    """Доверительный интервал для предсказаний одного свойства"""
    lower: np.ndarray
    upper: np.ndarray
    level: float
    std_error: float
    z: float

    @property
    def half_width(self) -> np.ndarray:
        return (self.upper - self.lower) / 2.0

    @property
    def intervals(self) -> np.ndarray:
        """Матрица (n_samples, 2): нижняя и верхняя граница"""
        return np.column_stack([self.lower, self.upper])
