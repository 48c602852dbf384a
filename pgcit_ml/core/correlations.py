#!/usr/bin/env python3
"""
📈 Корреляции признаков и свойств

Матрица корреляций признаки × свойства (Спирмен или Пирсон) с p-значениями
и срез для визуализации: фильтры по именам, значимые пары, общая важность.
"""

import fnmatch
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ..utils.config import Config, SUPPORTED_CORRELATION_TYPES
from ..utils.logger import get_logger
from .importance import average_importance
from .records import CorrelationMatrix, TrainingResults

MIN_PAIRED_SAMPLES = 3


def _pair_correlation(x: np.ndarray, y: np.ndarray, method: str) -> Tuple[float, float]:
    mask = np.isfinite(x) & np.isfinite(y)
    x, y = x[mask], y[mask]
    if len(x) < MIN_PAIRED_SAMPLES or np.ptp(x) == 0 or np.ptp(y) == 0:
        return np.nan, np.nan
    if method == 'pearson':
        r, p = stats.pearsonr(x, y)
    else:
        r, p = stats.spearmanr(x, y)
    return float(r), float(p)


def compute_correlations(features: np.ndarray, properties: np.ndarray,
                         feature_names: Sequence[str], property_names: Sequence[str],
                         method: str = 'spearman') -> CorrelationMatrix:
    """
    Корреляции каждого признака с каждым свойством по полному набору

    Пары с пропусками считаются по совместно заполненным образцам.
    """
    values = np.full((len(feature_names), len(property_names)), np.nan)
    pvalues = np.full_like(values, np.nan)
    for i in range(len(feature_names)):
        for j in range(len(property_names)):
            values[i, j], pvalues[i, j] = _pair_correlation(features[:, i], properties[:, j], method)

    return CorrelationMatrix(
        values=pd.DataFrame(values, index=list(feature_names), columns=list(property_names)),
        pvalues=pd.DataFrame(pvalues, index=list(feature_names), columns=list(property_names)),
        correlation_type=method,
    )


def match_patterns(names: Sequence[str], patterns: Optional[Sequence[str]]) -> List[str]:
    """Имена, подходящие хотя бы под один шаблон (`*` - любая подстрока, сравнение целиком)"""
    if not patterns:
        return list(names)
    if isinstance(patterns, str):
        patterns = [patterns]
    return [name for name in names if any(fnmatch.fnmatchcase(name, p) for p in patterns)]


@dataclass
class CorrelationPair:
    """Пара признак-свойство с данными для диаграммы рассеяния"""
    feature: str
    property: str
    correlation: float
    pvalue: float
    x: np.ndarray
    y: np.ndarray


@dataclass
class CorrelationView:
    """Срез корреляций для отображения"""
    correlation_type: str
    matrix: pd.DataFrame
    pvalues: pd.DataFrame
    significant: pd.DataFrame
    importance: pd.DataFrame
    top_pairs: List[CorrelationPair] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return self.matrix.empty


class CorrelationAnalyzer:
    """Корреляционный анализ результатов обучения"""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.logger = get_logger('CorrelationAnalyzer', level=self.config.log_level)

    def view(self, results: TrainingResults, feature_filter: Optional[Sequence[str]] = None,
             property_filter: Optional[Sequence[str]] = None,
             correlation_type: Optional[str] = None,
             significance_level: Optional[float] = None) -> CorrelationView:
        """
        Срез корреляционной матрицы

        Args:
            results: Результаты обучения
            feature_filter: Шаблоны признаков (`*` допускается)
            property_filter: Шаблоны свойств
            correlation_type: 'spearman' или 'pearson'
            significance_level: Уровень значимости

        Returns:
            CorrelationView
        """
        settings = self.config.correlation
        method = (correlation_type or settings.correlation_type).lower()
        alpha = significance_level if significance_level is not None else settings.significance_level

        if method not in SUPPORTED_CORRELATION_TYPES:
            self.logger.warning(f"⚠️ Неизвестный тип корреляции '{method}', используем spearman")
            method = 'spearman'

        correlations = self._correlations_for(results, method)
        if correlations is None:
            self.logger.warning("⚠️ В результатах нет матрицы корреляций")
            return self._empty_view(method)
        method = correlations.correlation_type

        features = match_patterns(list(correlations.values.index), feature_filter)
        properties = match_patterns(list(correlations.values.columns), property_filter)
        if not features or not properties:
            self.logger.warning("⚠️ После фильтрации не осталось признаков или свойств")
            return self._empty_view(method)

        matrix = correlations.values.loc[features, properties]
        pvalues = correlations.pvalues.loc[features, properties]
        significant = pvalues < alpha

        importance = self._global_importance(results, features).head(settings.max_importance_bars)
        top_pairs = self._top_pairs(results, matrix, pvalues, alpha)

        self.logger.info(
            f"📈 Корреляции ({method}): {len(features)} признаков × {len(properties)} свойств, "
            f"значимых пар: {int(significant.values.sum())}"
        )
        return CorrelationView(method, matrix, pvalues, significant, importance, top_pairs)

    def _correlations_for(self, results: TrainingResults, method: str) -> Optional[CorrelationMatrix]:
        stored = results.correlations
        if stored is not None and stored.correlation_type == method:
            return stored
        if results.features is not None and results.properties is not None:
            return compute_correlations(results.features, results.properties,
                                        results.feature_names, results.property_names, method)
        if stored is not None:
            self.logger.warning(
                f"⚠️ Нет данных для пересчёта корреляций ({method}), "
                f"используем сохранённые ({stored.correlation_type})"
            )
        return stored

    def _global_importance(self, results: TrainingResults, features: Sequence[str]) -> pd.DataFrame:
        per_property = {
            name: tables['average']
            for name, tables in results.feature_importance.items() if 'average' in tables
        }
        table = average_importance(per_property)
        return table[table['feature'].isin(features)].reset_index(drop=True)

    def _top_pairs(self, results: TrainingResults, matrix: pd.DataFrame,
                   pvalues: pd.DataFrame, alpha: float) -> List[CorrelationPair]:
        settings = self.config.correlation
        candidates = []
        for feature in matrix.index:
            for prop in matrix.columns:
                r, p = matrix.at[feature, prop], pvalues.at[feature, prop]
                if np.isfinite(r) and abs(r) >= settings.min_abs_correlation and p < alpha:
                    candidates.append((abs(r), feature, prop, r, p))
        candidates.sort(key=lambda item: item[0], reverse=True)

        pairs = []
        for _, feature, prop, r, p in candidates[:settings.max_scatter_pairs]:
            x = y = np.array([])
            if results.features is not None and results.properties is not None:
                x = results.features[:, results.feature_names.index(feature)]
                y = results.properties[:, results.property_names.index(prop)]
            pairs.append(CorrelationPair(feature, prop, float(r), float(p), x, y))
        return pairs

    def _empty_view(self, method: str) -> CorrelationView:
        empty = pd.DataFrame()
        return CorrelationView(method, empty, empty, empty,
                               pd.DataFrame(columns=['feature', 'importance']), [])
