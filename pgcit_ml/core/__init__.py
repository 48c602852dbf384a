"""
🏗️ Core модуль - базовые компоненты системы

Обучение, предсказание, корреляции и записи результатов.
"""

from .base_system import BaseSystem
from .model_manager import ModelManager
from .predictor import PropertyPredictor
from .correlations import CorrelationAnalyzer, CorrelationView
from .records import (
    ModelRecord, MetricsRecord, TrainingResults, StandardizationRecord,
    PropertyPrediction, ConfidenceInterval
)

__all__ = [
    'BaseSystem',
    'ModelManager',
    'PropertyPredictor',
    'CorrelationAnalyzer',
    'CorrelationView',
    'ModelRecord',
    'MetricsRecord',
    'TrainingResults',
    'StandardizationRecord',
    'PropertyPrediction',
    'ConfidenceInterval'
]
