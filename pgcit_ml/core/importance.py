#!/usr/bin/env python3
"""
🏅 Важность признаков

Чувствительность к возмущению, ранговая корреляция как запасной вариант,
нормировка и усреднение по семействам моделей (по имени признака).
"""

from typing import Callable, Dict, List, Sequence

import numpy as np
import pandas as pd
from scipy import stats


def normalize_importance(values: np.ndarray) -> np.ndarray:
    """Нормировка на сумму 1; нулевая сумма даёт равномерное распределение"""
    values = np.abs(np.asarray(values, dtype=float))
    values[~np.isfinite(values)] = 0.0
    total = values.sum()
    if total <= 0:
        return np.full(len(values), 1.0 / len(values)) if len(values) else values
    return values / total


def perturbation_importance(predict: Callable[[np.ndarray], np.ndarray], X: np.ndarray,
                            scale: float = 0.1) -> np.ndarray:
    """
    Чувствительность модели к сдвигу каждого признака

    Колонка j сдвигается на scale * std(колонки j); важность это средний
    модуль изменения предсказания.
    """
    baseline = predict(X)
    stds = np.std(X, axis=0, ddof=1) if len(X) > 1 else np.zeros(X.shape[1])
    importance = np.zeros(X.shape[1])
    for j in range(X.shape[1]):
        perturbed = X.copy()
        perturbed[:, j] = perturbed[:, j] + scale * stds[j]
        importance[j] = float(np.mean(np.abs(predict(perturbed) - baseline)))
    return importance


def spearman_importance(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """|ρ Спирмена| между каждым признаком и таргетом"""
    importance = np.zeros(X.shape[1])
    for j in range(X.shape[1]):
        column = X[:, j]
        if np.ptp(column) == 0 or np.ptp(y) == 0:
            continue
        rho, _ = stats.spearmanr(column, y)
        importance[j] = abs(rho) if np.isfinite(rho) else 0.0
    return importance


def importance_table(feature_names: Sequence[str], values: np.ndarray) -> pd.DataFrame:
    """Таблица (feature, importance), отсортированная по убыванию"""
    table = pd.DataFrame({'feature': list(feature_names), 'importance': np.asarray(values, dtype=float)})
    return table.sort_values('importance', ascending=False, kind='mergesort').reset_index(drop=True)


def average_importance(tables: Dict[str, pd.DataFrame]) -> pd.DataFrame:
    """
    Средняя важность по семействам

    Таблицы сопоставляются по имени признака, а не по позиции; делитель это
    число семейств, реально обученных для свойства.
    """
    if not tables:
        return pd.DataFrame(columns=['feature', 'importance'])

    merged: Dict[str, float] = {}
    order: List[str] = []
    for table in tables.values():
        for feature, value in zip(table['feature'], table['importance']):
            if feature not in merged:
                merged[feature] = 0.0
                order.append(feature)
            merged[feature] += float(value)

    n_families = len(tables)
    return importance_table(order, [merged[feature] / n_families for feature in order])
