#!/usr/bin/env python3
"""
🔬 FeatureManager - извлечение признаков и свойств

Превращает набор образцов в выровненные матрицы признаков и свойств
с фиксированным порядком колонок.
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..utils.config import Config
from ..utils.logger import get_logger
from ..utils.validators import ArgumentError, FeatureValidator, SampleValidator
from .name_parser import FEATURE_DOMAINS, PROPERTY_DOMAINS, parse_name
from .feature_resolver import discover_features, resolve_feature
from .property_resolver import discover_properties, resolve_property


class FeatureManager:
    """
    Менеджер признаков

    Отвечает за:
    - Обнаружение доступных признаков и свойств (по первому образцу)
    - Фильтрацию по пользовательским спискам
    - Построение матриц образцы × имена
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Инициализация менеджера признаков

        Args:
            config: Конфигурация системы
        """
        self.config = config or Config()
        self.logger = get_logger('FeatureManager', level=self.config.log_level)

    def discover(self, sample: Mapping) -> Tuple[List[str], List[str]]:
        """
        Обнаружение признаков и свойств в одном образце

        Returns:
            (feature_names, property_names) в порядке обнаружения
        """
        domains = self.config.features.include_domains
        return discover_features(sample, domains), discover_properties(sample)

    def filter_names(self, available: Sequence[str], requested: Optional[Sequence[str]],
                     kind: str = 'признак') -> List[str]:
        """
        Фильтрация обнаруженных имён по пользовательскому списку

        Порядок результата совпадает с порядком в `requested`. Неизвестные имена
        отбрасываются с предупреждением.

        Args:
            available: Обнаруженные имена
            requested: Запрошенные имена (None или пустой список - без фильтра)
            kind: Что фильтруем (для сообщений)

        Returns:
            Отфильтрованный список

        Raises:
            ArgumentError: если после фильтрации ничего не осталось
        """
        requested = FeatureValidator.validate_name_list(requested, kind)
        # Пустой список равносилен отсутствию фильтра
        if not requested:
            return list(available)

        known = set(available)
        selected: List[str] = []
        for name in requested:
            if name not in known:
                self.logger.warning(f"⚠️ {kind} '{name}' не найден в первом образце и будет пропущен")
            elif name not in selected:
                selected.append(name)

        if not selected:
            raise ArgumentError(f"Ни один из запрошенных ({kind}) не найден: {requested}")
        return selected

    def build_matrix(self, samples: Sequence[Mapping], names: Sequence[str],
                     resolver: Callable[[Mapping, str], float]) -> np.ndarray:
        """Матрица образцы × имена; ненайденные значения это NaN"""
        matrix = np.full((len(samples), len(names)), np.nan, dtype=float)
        for i, sample in enumerate(samples):
            for j, name in enumerate(names):
                matrix[i, j] = resolver(sample, name)
        return matrix

    def build_features(self, samples: Sequence[Mapping], feature_names: Sequence[str]) -> np.ndarray:
        """Матрица признаков по заданному списку имён (без обнаружения)"""
        return self.build_matrix(samples, feature_names, resolve_feature)

    def build_properties(self, samples: Sequence[Mapping], property_names: Sequence[str]) -> np.ndarray:
        """Матрица свойств по заданному списку имён (без обнаружения)"""
        return self.build_matrix(samples, property_names, resolve_property)

    def extract(self, samples: Any, target_properties: Optional[Sequence[str]] = None,
                input_features: Optional[Sequence[str]] = None
                ) -> Tuple[np.ndarray, np.ndarray, List[str], List[str]]:
        """
        Извлечение признаков и свойств из набора образцов

        Args:
            samples: Образец или список образцов
            target_properties: Список свойств (None - все обнаруженные)
            input_features: Список признаков (None - все обнаруженные)

        Returns:
            (features, properties, feature_names, property_names)
        """
        samples = SampleValidator.normalize_samples(samples)

        try:
            available_features, available_properties = self.discover(samples[0])
            feature_names = self.filter_names(available_features, input_features, 'признак')
            property_names = self.filter_names(available_properties, target_properties, 'свойство')

            if not feature_names:
                self.logger.warning("⚠️ В первом образце не найдено ни одного признака")
            if not property_names:
                self.logger.warning("⚠️ В первом образце не найдено ни одного свойства")

            features = self.build_features(samples, feature_names)
            properties = self.build_properties(samples, property_names)

            self.warn_missing(features, 'признаков')
            self.warn_missing(properties, 'свойств')
            self.logger.log_extraction(len(samples), len(feature_names), len(property_names))

            return features, properties, feature_names, property_names

        except ArgumentError as e:
            self.logger.error(f"❌ Ошибка извлечения признаков: {e}")
            raise

    def warn_missing(self, matrix: np.ndarray, kind: str) -> int:
        """Предупреждение о NaN в матрице"""
        missing = FeatureValidator.count_missing(matrix)
        if missing and self.config.features.warn_on_nan:
            self.logger.warning(
                f"⚠️ В матрице {kind} {missing} пропущенных значений (NaN) "
                f"в {int(np.isnan(matrix).any(axis=1).sum())} образцах"
            )
        return missing

    def to_frame(self, matrix: np.ndarray, names: Sequence[str]) -> pd.DataFrame:
        """Матрица в DataFrame с именами колонок"""
        return pd.DataFrame(matrix, columns=list(names))

    def get_feature_info(self, feature_names: Sequence[str],
                         features: Optional[np.ndarray] = None) -> Dict[str, Any]:
        """
        Получение информации о признаках

        Args:
            feature_names: Имена признаков
            features: Матрица признаков (опционально)

        Returns:
            Словарь с количеством признаков по доменам и пропусками
        """
        info: Dict[str, Any] = {'total_features': len(feature_names)}

        for domain in FEATURE_DOMAINS:
            info[f'{domain}_count'] = 0
        for name in feature_names:
            path = parse_name(name, FEATURE_DOMAINS)
            if path is not None:
                info[f'{path.domain}_count'] += 1

        if features is not None:
            info['shape'] = features.shape
            info['missing_values'] = FeatureValidator.count_missing(features)

        return info

    def get_property_info(self, property_names: Sequence[str]) -> Dict[str, int]:
        """Количество свойств по доменам"""
        info = {f'{domain}_count': 0 for domain in PROPERTY_DOMAINS}
        for name in property_names:
            path = parse_name(name, PROPERTY_DOMAINS)
            if path is not None:
                info[f'{path.domain}_count'] += 1
        return info
