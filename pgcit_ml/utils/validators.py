#!/usr/bin/env python3
"""
✅ Система валидации для PGCit ML

Валидация образцов, матриц признаков, сохранённых моделей и входов предсказания.
"""

from collections.abc import Mapping
from typing import List, Dict, Any, Optional, Sequence

import numpy as np


class ValidationError(Exception):
    """Исключение для ошибок валидации"""
    pass


class ArgumentError(ValidationError, ValueError):
    """Недопустимые аргументы вызова (пустой набор образцов, пустой список имён и т.п.)"""
    pass


class ConfigError(ValidationError):
    """Некорректная конфигурация"""
    pass


class BundleError(ValidationError):
    """Повреждённый или несогласованный набор сохранённых моделей"""
    pass


class SampleValidator:
    """Валидатор образцов"""

    @staticmethod
    def normalize_samples(samples: Any) -> List[Mapping]:
        """
        Приведение входа к списку образцов

        Args:
            samples: Один образец (словарь) или список/кортеж образцов

        Returns:
            Список образцов

        Raises:
            ArgumentError: если образцов нет или тип не поддерживается
        """
        if samples is None:
            raise ArgumentError("Не переданы образцы")

        if isinstance(samples, Mapping):
            return [samples]

        if not isinstance(samples, (list, tuple)):
            raise ArgumentError(
                f"Образцы должны быть словарём или списком словарей, получено: {type(samples).__name__}"
            )

        if len(samples) == 0:
            raise ArgumentError("Пустой набор образцов")

        bad = [i for i, sample in enumerate(samples) if not isinstance(sample, Mapping)]
        if bad:
            raise ArgumentError(f"Элементы {bad} не являются образцами (ожидался словарь)")

        return list(samples)

    @staticmethod
    def validate_min_samples(n_samples: int, minimum: int = 3) -> bool:
        """Проверка минимального количества образцов для кросс-валидации"""
        if n_samples < minimum:
            raise ArgumentError(
                f"Недостаточно образцов для кросс-валидации: {n_samples} (минимум {minimum})"
            )
        return True


class FeatureValidator:
    """Валидатор списков признаков и свойств"""

    @staticmethod
    def validate_name_list(names: Optional[Sequence[str]], kind: str = 'признаков') -> Optional[List[str]]:
        """
        Проверка пользовательского списка имён

        Args:
            names: Список имён или None
            kind: Что за имена (для сообщения об ошибке)

        Returns:
            Список строк или None
        """
        if names is None:
            return None
        if isinstance(names, str):
            names = [names]
        names = list(names)
        not_strings = [name for name in names if not isinstance(name, str)]
        if not_strings:
            raise ArgumentError(f"Имена {kind} должны быть строками: {not_strings}")
        return names

    @staticmethod
    def count_missing(matrix: np.ndarray) -> int:
        """Количество NaN в матрице"""
        if matrix.size == 0:
            return 0
        return int(np.isnan(matrix).sum())


class ModelValidator:
    """Валидатор моделей и данных для обучения"""

    REQUIRED_META_FIELDS = [
        'feature_names', 'property_names', 'standardized',
        'validation_method', 'validation_param', 'models', 'train_date'
    ]

    @staticmethod
    def validate_training_arrays(X: np.ndarray, y: np.ndarray) -> bool:
        """
        Валидация данных для обучения одной модели

        Args:
            X: Признаки (n_samples, n_features)
            y: Таргет (n_samples,)

        Returns:
            True если данные валидны
        """
        if not isinstance(X, np.ndarray) or not isinstance(y, np.ndarray):
            raise ValidationError("X и y должны быть numpy.ndarray")

        if X.ndim != 2:
            raise ValidationError(f"X должен быть двумерным, получено {X.ndim} измерений")

        if len(X) != len(y):
            raise ValidationError(f"Размерности X ({len(X)}) и y ({len(y)}) не совпадают")

        if len(X) == 0:
            raise ValidationError("Данные пустые")

        if np.any(np.isnan(X)) or np.any(np.isinf(X)):
            raise ValidationError("Обнаружены NaN или inf значения в признаках")

        if np.any(np.isnan(y)) or np.any(np.isinf(y)):
            raise ValidationError("Обнаружены NaN или inf значения в таргете")

        return True

    @staticmethod
    def validate_metadata(metadata: Dict[str, Any]) -> bool:
        """
        Валидация метаданных сохранённых моделей

        Args:
            metadata: Словарь из meta.json

        Returns:
            True если метаданные валидны
        """
        missing = [f for f in ModelValidator.REQUIRED_META_FIELDS if f not in metadata]
        if missing:
            raise BundleError(f"Отсутствуют обязательные поля метаданных: {missing}")

        if not isinstance(metadata['feature_names'], list) or not metadata['feature_names']:
            raise BundleError("feature_names должен быть непустым списком")

        if not isinstance(metadata['models'], dict):
            raise BundleError("models должен быть словарём {свойство: [семейства]}")

        return True

    @staticmethod
    def validate_prediction_input(X: np.ndarray, n_features: int) -> bool:
        """
        Валидация входных данных для предсказания

        Args:
            X: Матрица признаков
            n_features: Ожидаемое количество признаков

        Returns:
            True если форма совпадает
        """
        if X.ndim != 2:
            raise ValidationError(f"Ожидалась двумерная матрица, получено {X.ndim} измерений")

        if X.shape[1] != n_features:
            raise ValidationError(
                f"Количество признаков ({X.shape[1]}) не совпадает с ожидаемым ({n_features})"
            )

        if np.any(np.isinf(X)):
            raise ValidationError("Обнаружены бесконечные значения во входных данных")

        return True

    @staticmethod
    def validate_confidence_level(level: float) -> bool:
        """Уровень доверия должен лежать в (0, 1)"""
        if not isinstance(level, (int, float)) or not 0 < level < 1:
            raise ArgumentError(f"Уровень доверия должен быть в интервале (0, 1), получено {level}")
        return True
