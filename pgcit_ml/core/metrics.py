#!/usr/bin/env python3
"""
📊 Метрики регрессии

RMSE, R², MAE на отложенном фолде и агрегирование по фолдам.
"""

from typing import Dict, List, Sequence

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

METRIC_NAMES = ('rmse', 'r2', 'mae')


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Корень из среднеквадратичной ошибки"""
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def r2(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Коэффициент детерминации 1 - SS_res/SS_tot

    Для постоянного y_true (SS_tot = 0) возвращает NaN: на фолде из одного
    образца R² не определён.
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    ss_res = float(np.sum((y_true - y_pred) ** 2))
    ss_tot = float(np.sum((y_true - y_true.mean()) ** 2))
    if ss_tot == 0:
        return float('nan')
    return 1.0 - ss_res / ss_tot


def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Средняя абсолютная ошибка"""
    return float(mean_absolute_error(y_true, y_pred))


def score_fold(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    """Все метрики для одного фолда"""
    return {
        'rmse': rmse(y_true, y_pred),
        'r2': r2(y_true, y_pred),
        'mae': mae(y_true, y_pred),
    }


def _std(values: np.ndarray) -> float:
    finite = values[np.isfinite(values)]
    if len(finite) < 2:
        return 0.0 if len(finite) == 1 else float('nan')
    return float(np.std(finite, ddof=1))


def _mean(values: np.ndarray) -> float:
    finite = values[np.isfinite(values)]
    return float(finite.mean()) if len(finite) else float('nan')


def summarize_folds(fold_scores: Sequence[Dict[str, float]]) -> Dict[str, float]:
    """
    Среднее и стандартное отклонение (N-1) метрик по фолдам

    NaN-значения (например R² на вырожденном фолде) пропускаются.

    Returns:
        {'rmse_mean', 'rmse_std', 'r2_mean', 'r2_std', 'mae_mean', 'mae_std'}
    """
    summary: Dict[str, float] = {}
    for metric in METRIC_NAMES:
        values = np.array([scores[metric] for scores in fold_scores], dtype=float)
        summary[f'{metric}_mean'] = _mean(values)
        summary[f'{metric}_std'] = _std(values)
    return summary


def best_fold(fold_scores: List[Dict[str, float]]) -> int:
    """Индекс фолда с наименьшим RMSE"""
    values = np.array([scores['rmse'] for scores in fold_scores], dtype=float)
    values[~np.isfinite(values)] = np.inf
    return int(np.argmin(values))
