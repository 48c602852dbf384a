#!/usr/bin/env python3
"""
⚙️ Система конфигурации для PGCit ML

Централизованное управление настройками извлечения признаков,
обучения моделей, предсказаний и корреляционного анализа.
"""

import json
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field, asdict
from pathlib import Path

from .validators import ConfigError

SUPPORTED_MODEL_TYPES = ('regression', 'svm', 'ann', 'ensemble')
SUPPORTED_VALIDATION_METHODS = ('kfold', 'holdout')
SUPPORTED_CORRELATION_TYPES = ('spearman', 'pearson')


@dataclass
class FeatureConfig:
    """Конфигурация для извлечения признаков"""
    warn_on_nan: bool = True
    # None - все домены (synthesis, ftir, tga, dsc_heating, dsc_cooling, solubility)
    include_domains: Optional[List[str]] = None


@dataclass
class TrainingConfig:
    """Конфигурация для обучения моделей"""
    model_types: List[str] = field(default_factory=lambda: ['regression', 'svm', 'ann'])
    validation_method: str = 'kfold'  # kfold, holdout
    validation_param: float = 5
    standardize: bool = True
    optimize_hyperparams: bool = True
    random_state: int = 42
    min_samples: int = 3

    # Параллелизм и дедлайн
    n_jobs: int = 1
    time_budget: Optional[float] = None  # секунды

    # Пошаговая регрессия
    p_enter: float = 0.05
    p_remove: float = 0.10

    # Поиск гиперпараметров (Optuna)
    inner_cv_folds: int = 3
    svm_trials: int = 20
    ann_trials: int = 15
    ensemble_trials: int = 15

    # Значения по умолчанию без оптимизации
    ann_default_width: int = 10
    ann_max_iter: int = 2000
    ensemble_default_cycles: int = 100
    ensemble_default_min_leaf: int = 5

    # Чувствительность для важности признаков (доля std)
    perturbation_scale: float = 0.1


@dataclass
class PredictionConfig:
    """Конфигурация для предсказаний"""
    model_type: str = 'best'
    confidence_interval: bool = True
    confidence_level: float = 0.95
    # RMSE ≈ 1.25 * MAE для нормальных ошибок
    mae_to_rmse: float = 1.25


@dataclass
class CorrelationConfig:
    """Конфигурация для корреляционного анализа"""
    correlation_type: str = 'spearman'
    significance_level: float = 0.05
    min_abs_correlation: float = 0.5
    max_scatter_pairs: int = 5
    max_importance_bars: int = 15


@dataclass
class Config:
    """Основная конфигурация системы"""
    # Пути
    models_root: str = 'models'
    logs_root: str = 'logs'

    # Настройки логирования
    log_level: str = 'INFO'
    log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    log_to_file: bool = False

    # Настройки MLflow
    enable_mlflow: bool = False
    mlflow_tracking_uri: str = 'file:./mlruns'
    mlflow_experiment_name: str = 'pgcit_properties'

    # Подконфигурации
    features: FeatureConfig = field(default_factory=FeatureConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    prediction: PredictionConfig = field(default_factory=PredictionConfig)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)

    def __post_init__(self):
        """Проверяем значения настроек"""
        if self.log_level.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ConfigError(f"Неизвестный уровень логирования: {self.log_level}")

        training = self.training
        if training.validation_method not in SUPPORTED_VALIDATION_METHODS:
            raise ConfigError(f"Неизвестный метод валидации: {training.validation_method}")
        if training.validation_param <= 0:
            raise ConfigError("validation_param должен быть положительным")
        if training.min_samples < 3:
            raise ConfigError("min_samples не может быть меньше 3")
        if training.n_jobs == 0:
            raise ConfigError("n_jobs не может быть 0")
        if training.time_budget is not None and training.time_budget <= 0:
            raise ConfigError("time_budget должен быть положительным")
        if not 0 < training.p_enter < training.p_remove < 1:
            raise ConfigError("Требуется 0 < p_enter < p_remove < 1")

        if not 0 < self.prediction.confidence_level < 1:
            raise ConfigError("confidence_level должен быть в интервале (0, 1)")
        if not 0 < self.correlation.significance_level < 1:
            raise ConfigError("significance_level должен быть в интервале (0, 1)")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'Config':
        """Создать конфигурацию из словаря"""
        config_dict = dict(config_dict)
        sections = {
            'features': FeatureConfig,
            'training': TrainingConfig,
            'prediction': PredictionConfig,
            'correlation': CorrelationConfig,
        }
        for key, section_cls in sections.items():
            if key in config_dict and isinstance(config_dict[key], dict):
                config_dict[key] = section_cls(**config_dict[key])
        return cls(**config_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Преобразовать конфигурацию в словарь"""
        return asdict(self)

    def save(self, path: str):
        """Сохранить конфигурацию в JSON"""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> 'Config':
        """Загрузить конфигурацию из JSON"""
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))


# Предустановленные конфигурации

# Быстрый прогон: только линейная регрессия без поиска гиперпараметров
FAST_CONFIG = Config(
    training=TrainingConfig(
        model_types=['regression'],
        optimize_hyperparams=False,
    )
)

# Полный прогон: все семейства моделей, 10-fold
THOROUGH_CONFIG = Config(
    training=TrainingConfig(
        model_types=list(SUPPORTED_MODEL_TYPES),
        validation_param=10,
        optimize_hyperparams=True,
        svm_trials=40,
        ann_trials=30,
        ensemble_trials=30,
    )
)
