#!/usr/bin/env python3
"""
🎛️ Поиск гиперпараметров

Optuna (TPE) минимизирует среднюю MSE внутренней k-fold кросс-валидации
на обучающей части фолда.
"""

import math
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np
import optuna
from sklearn.model_selection import KFold

from ..utils.logger import get_logger

optuna.logging.set_verbosity(optuna.logging.WARNING)

logger = get_logger('Tuning')


def inner_cv_loss(fit_predict: Callable[[np.ndarray, np.ndarray, np.ndarray], np.ndarray],
                  X: np.ndarray, y: np.ndarray, n_folds: int = 3,
                  random_state: int = 42) -> float:
    """
    Средняя MSE по внутренним фолдам

    Args:
        fit_predict: (X_train, y_train, X_test) -> y_pred
        X: Признаки обучающей части
        y: Таргет обучающей части
        n_folds: Число внутренних фолдов (не больше числа образцов)
        random_state: Зерно перемешивания

    Returns:
        Средняя MSE
    """
    k = min(n_folds, len(y))
    if k < 2:
        raise ValueError(f"Недостаточно образцов для внутренней валидации: {len(y)}")

    splitter = KFold(n_splits=k, shuffle=True, random_state=random_state)
    losses = []
    for train_idx, test_idx in splitter.split(X):
        y_pred = fit_predict(X[train_idx], y[train_idx], X[test_idx])
        losses.append(float(np.mean((y[test_idx] - y_pred) ** 2)))
    return float(np.mean(losses))


def run_study(objective: Callable[[optuna.Trial], float], n_trials: int,
              random_state: int = 42, timeout: Optional[float] = None,
              study_name: Optional[str] = None) -> Tuple[Dict[str, Any], float]:
    """
    Запуск исследования Optuna

    Args:
        objective: Целевая функция (меньше - лучше)
        n_trials: Количество испытаний
        random_state: Зерно сэмплера
        timeout: Ограничение по времени в секундах
        study_name: Имя исследования (для логов)

    Returns:
        (лучшие параметры, лучшее значение)
    """
    sampler = optuna.samplers.TPESampler(seed=random_state)
    study = optuna.create_study(direction='minimize', sampler=sampler, study_name=study_name)
    study.optimize(objective, n_trials=n_trials, timeout=timeout)

    completed = [t for t in study.trials if t.value is not None and math.isfinite(t.value)]
    if not completed:
        logger.debug(f"🔍 {study_name}: ни одно испытание не завершилось успешно")
        return {}, math.inf

    best = min(completed, key=lambda t: t.value)
    return dict(best.params), float(best.value)


def safe_objective(loss: Callable[[optuna.Trial], float], name: str) -> Callable[[optuna.Trial], float]:
    """Обёртка: упавшее испытание получает inf вместо остановки поиска"""
    def objective(trial: optuna.Trial) -> float:
        try:
            value = loss(trial)
        except Exception as e:
            logger.debug(f"🔍 {name}: испытание {trial.number} не удалось: {e}")
            return math.inf
        return value if math.isfinite(value) else math.inf

    return objective
