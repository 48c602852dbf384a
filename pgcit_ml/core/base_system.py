#!/usr/bin/env python3
"""
🏗️ Базовый класс системы анализа PGCit

Центральный компонент, координирующий работу всех подсистем.
"""

import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..features import FeatureManager
from ..utils.config import Config
from ..utils.logger import Logger
from ..utils.validators import SampleValidator
from .correlations import CorrelationAnalyzer, CorrelationView
from .model_manager import ModelManager, Models
from .predictor import Confidence, Predictions, PropertyPredictor
from .records import TrainingResults


class BaseSystem:
    """
    Базовый класс системы

    Координирует работу:
    - FeatureManager: извлечение признаков и свойств
    - ModelManager: обучение и хранение моделей
    - PropertyPredictor: предсказания
    - CorrelationAnalyzer: корреляционный анализ
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Инициализация системы

        Args:
            config: Конфигурация системы
        """
        self.config = config or Config()

        # Инициализируем подсистемы
        self.feature_manager = FeatureManager(self.config)
        self.model_manager = ModelManager(self.config)
        self.predictor = PropertyPredictor(self.config)
        self.correlation_analyzer = CorrelationAnalyzer(self.config)

        log_file = None
        if self.config.log_to_file:
            log_file = str(Path(self.config.logs_root) / f"pgcit_ml_{time.strftime('%Y%m%d')}.log")
        self.logger = Logger(
            name='BaseSystem',
            level=self.config.log_level,
            log_file=log_file,
            log_format=self.config.log_format
        )

        self.logger.debug("🏗️ Базовая система инициализирована")

    def extract_features(self, samples: Any, target_properties: Optional[Sequence[str]] = None,
                         input_features: Optional[Sequence[str]] = None
                         ) -> Tuple[np.ndarray, np.ndarray, List[str], List[str]]:
        """
        Извлечение матриц признаков и свойств

        Returns:
            (features, properties, feature_names, property_names)
        """
        return self.feature_manager.extract(samples, target_properties, input_features)

    def train_models(self, samples: Any, target_properties: Optional[Sequence[str]] = None,
                     input_features: Optional[Sequence[str]] = None,
                     model_types: Optional[Sequence[str]] = None) -> Tuple[Models, TrainingResults]:
        """
        Извлечение признаков и обучение моделей

        Args:
            samples: Образцы
            target_properties: Целевые свойства (None - все)
            input_features: Входные признаки (None - все)
            model_types: Семейства моделей (None - из конфигурации)

        Returns:
            (models, results)
        """
        samples = SampleValidator.normalize_samples(samples)
        SampleValidator.validate_min_samples(len(samples), self.config.training.min_samples)

        features, properties, feature_names, property_names = self.extract_features(
            samples, target_properties, input_features
        )
        self.logger.log_training_start(', '.join(property_names) or '-', {
            'model_types': list(model_types or self.config.training.model_types),
            'validation': f"{self.config.training.validation_method}:{self.config.training.validation_param}",
            'standardize': self.config.training.standardize,
            'optimize_hyperparams': self.config.training.optimize_hyperparams,
        })

        try:
            return self.model_manager.train(features, properties, feature_names, property_names, model_types)
        except Exception as e:
            self.logger.log_error('train_models', e)
            raise

    def predict(self, samples: Any, models: Models, results: TrainingResults,
                model_type: Optional[str] = None, confidence_interval: Optional[bool] = None,
                confidence_level: Optional[float] = None) -> Tuple[Predictions, Confidence]:
        """Предсказание свойств для новых образцов"""
        return self.predictor.predict(samples, models, results, model_type,
                                      confidence_interval, confidence_level)

    def correlation_view(self, results: TrainingResults, feature_filter: Optional[Sequence[str]] = None,
                         property_filter: Optional[Sequence[str]] = None,
                         correlation_type: Optional[str] = None,
                         significance_level: Optional[float] = None) -> CorrelationView:
        """Срез корреляций для визуализации"""
        return self.correlation_analyzer.view(results, feature_filter, property_filter,
                                              correlation_type, significance_level)

    def save_models(self, models: Models, results: TrainingResults, name: str = 'default') -> str:
        """Сохранение моделей вместе с результатами"""
        return self.model_manager.save_bundle(models, results, name)

    def load_models(self, name: str = 'default') -> Tuple[Models, TrainingResults]:
        """Загрузка моделей вместе с результатами"""
        return self.model_manager.load_bundle(name)

    def get_system_info(self) -> Dict[str, Any]:
        """Информация о системе"""
        return {
            'config': self.config.to_dict(),
            'model_manager': self.model_manager.get_info(),
            'saved_bundles': [bundle['name'] for bundle in self.model_manager.list_bundles()],
        }
