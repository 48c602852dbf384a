#!/usr/bin/env python3
"""
🔄 Разбиения для кросс-валидации

Одно разбиение создаётся на свойство и используется всеми семействами моделей
этого свойства, чтобы метрики разных семейств были сравнимы.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from sklearn.model_selection import KFold, ShuffleSplit

from ..utils.logger import get_logger
from ..utils.validators import ArgumentError

logger = get_logger('Validation')


@dataclass
class CVPartition:
    """Зафиксированное разбиение на обучающие/тестовые индексы"""
    method: str
    param: float
    n_samples: int
    folds: List[Tuple[np.ndarray, np.ndarray]]

    @property
    def n_folds(self) -> int:
        return len(self.folds)

    def __iter__(self):
        return iter(self.folds)

    def describe(self) -> dict:
        """Краткое описание для метаданных"""
        return {
            'method': self.method,
            'param': self.param,
            'n_samples': self.n_samples,
            'n_folds': self.n_folds,
            'test_sizes': [int(len(test)) for _, test in self.folds],
        }


def make_partition(n_samples: int, method: str = 'kfold', param: float = 5,
                   random_state: int = 42) -> CVPartition:
    """
    Создание разбиения

    Args:
        n_samples: Количество образцов
        method: 'kfold' (param = число фолдов) или 'holdout'
            (param < 1 - доля тестовой выборки, иначе количество образцов)
        param: Параметр метода
        random_state: Зерно перемешивания

    Returns:
        CVPartition
    """
    if n_samples < 2:
        raise ArgumentError(f"Для разбиения нужно минимум 2 образца, получено {n_samples}")

    if method == 'kfold':
        k = int(param)
        if k < 2:
            raise ArgumentError(f"Число фолдов должно быть не меньше 2, получено {param}")
        if k > n_samples:
            logger.warning(f"⚠️ Фолдов ({k}) больше, чем образцов ({n_samples}); используем {n_samples}")
            k = n_samples
        splitter = KFold(n_splits=k, shuffle=True, random_state=random_state)

    elif method == 'holdout':
        if param <= 0:
            raise ArgumentError(f"Размер отложенной выборки должен быть положительным, получено {param}")
        if param < 1:
            test_size = max(1, int(round(param * n_samples)))
        else:
            test_size = int(param)
        test_size = min(test_size, n_samples - 1)
        splitter = ShuffleSplit(n_splits=1, test_size=test_size, random_state=random_state)

    else:
        raise ArgumentError(f"Неизвестный метод валидации: {method}")

    folds = [(train, test) for train, test in splitter.split(np.zeros((n_samples, 1)))]
    return CVPartition(method=method, param=param, n_samples=n_samples, folds=folds)
