#!/usr/bin/env python3
"""
🧩 Функциональный интерфейс PGCit ML

Четыре точки входа для внешних компонентов (импорт данных, GUI, визуализация):
extract_features, train_models, predict_properties, correlation_view.
"""

import dataclasses
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .core.correlations import CorrelationView
from .core.model_manager import Models
from .core.predictor import Confidence, Predictions
from .core.records import TrainingResults
from .systems.property_system import PropertySystem
from .utils.config import Config
from .utils.validators import ArgumentError, ConfigError


def _with_overrides(config: Optional[Config], **training_overrides) -> Config:
    config = config or Config()
    try:
        training = dataclasses.replace(config.training, **training_overrides)
        return dataclasses.replace(config, training=training)
    except ConfigError as e:
        # Неверные аргументы вызова, а не файл конфигурации
        raise ArgumentError(str(e)) from e


def extract_features(samples: Any, target_properties: Optional[Sequence[str]] = None,
                     input_features: Optional[Sequence[str]] = None,
                     config: Optional[Config] = None
                     ) -> Tuple[np.ndarray, np.ndarray, List[str], List[str]]:
    """
    Извлечение признаков и свойств

    Returns:
        (feature_matrix, property_matrix, feature_names, property_names)

    Raises:
        ArgumentError: пустой набор образцов, неверный тип, пустой список после фильтрации
    """
    return PropertySystem(config).extract_features(samples, target_properties, input_features)


def train_models(samples: Any, target_properties: Optional[Sequence[str]] = None,
                 input_features: Optional[Sequence[str]] = None,
                 model_types: Sequence[str] = ('regression', 'svm', 'ann'),
                 validation_method: str = 'kfold', validation_param: float = 5,
                 standardize: bool = True, optimize_hyperparams: bool = True,
                 config: Optional[Config] = None) -> Tuple[Models, TrainingResults]:
    """
    Обучение моделей для всех целевых свойств

    Returns:
        (models, results): models[свойство][семейство] -> ModelRecord

    Raises:
        ArgumentError: меньше 3 образцов, неверный метод или параметр валидации
    """
    config = _with_overrides(
        config,
        model_types=list(model_types),
        validation_method=validation_method,
        validation_param=validation_param,
        standardize=standardize,
        optimize_hyperparams=optimize_hyperparams,
    )
    return PropertySystem(config).train_models(samples, target_properties, input_features)


def predict_properties(samples: Any, models: Models, results: TrainingResults,
                       model_type: str = 'best', confidence_interval: bool = True,
                       confidence_level: float = 0.95,
                       config: Optional[Config] = None) -> Tuple[Predictions, Confidence]:
    """
    Предсказание свойств для новых образцов

    Returns:
        (predictions, confidence): словари по именам свойств

    Raises:
        ArgumentError: пустой набор образцов
    """
    return PropertySystem(config).predict(samples, models, results, model_type,
                                          confidence_interval, confidence_level)


def correlation_view(results: TrainingResults, feature_filter: Optional[Sequence[str]] = None,
                     property_filter: Optional[Sequence[str]] = None,
                     correlation_type: str = 'spearman', significance_level: float = 0.05,
                     config: Optional[Config] = None) -> CorrelationView:
    """Матрица корреляций с фильтрами, значимыми парами и общей важностью признаков"""
    return PropertySystem(config).correlation_view(results, feature_filter, property_filter,
                                                   correlation_type, significance_level)
