"""
🧪 PGCit ML - анализ свойств цитрат-глицериновых полимеров

Извлечение признаков из данных FTIR/TGA/DSC/растворимости, обучение
моделей свойств, предсказания с доверительными интервалами и
корреляционный анализ.
"""

from .api import extract_features, train_models, predict_properties, correlation_view
from .systems import PropertySystem
from .utils.config import Config
from .utils.validators import ArgumentError, ValidationError

__version__ = '1.0.0'

__all__ = [
    'extract_features',
    'train_models',
    'predict_properties',
    'correlation_view',
    'PropertySystem',
    'Config',
    'ArgumentError',
    'ValidationError',
]
