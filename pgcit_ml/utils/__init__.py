"""
🔧 Utils модуль - утилиты и вспомогательные функции

Содержит конфигурацию, логирование, валидацию и загрузку образцов.
"""

from .config import Config, FeatureConfig, TrainingConfig, PredictionConfig, CorrelationConfig
from .logger import Logger, get_logger
from .sample_io import load_samples
from .validators import (
    ValidationError, ArgumentError, ConfigError, BundleError,
    SampleValidator, FeatureValidator, ModelValidator
)

__all__ = [
    'Config',
    'FeatureConfig',
    'TrainingConfig',
    'PredictionConfig',
    'CorrelationConfig',
    'Logger',
    'get_logger',
    'load_samples',
    'ValidationError',
    'ArgumentError',
    'ConfigError',
    'BundleError',
    'SampleValidator',
    'FeatureValidator',
    'ModelValidator'
]
