#!/usr/bin/env python3
"""
🤖 ModelManager - обучение и хранение моделей

Кросс-валидация для каждой пары (свойство, семейство модели), финальное
обучение на всех данных, важность признаков, корреляции, сохранение и
загрузка моделей вместе с результатами обучения.
"""

import json
import os
import pickle
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import mlflow
import numpy as np

from ..utils.config import Config
from ..utils.logger import get_logger
from ..utils.validators import BundleError, ModelValidator, SampleValidator
from .correlations import compute_correlations
from .importance import average_importance, importance_table, normalize_importance, spearman_importance
from .metrics import best_fold, score_fold, summarize_folds
from .model_families import BaseRegressor, get_family
from .records import (
    MetricsRecord, ModelRecord, StandardizationRecord, TaskOutcome, TrainingResults
)
from .validation import CVPartition, make_partition

Models = Dict[str, Dict[str, ModelRecord]]


class TrainingTimeoutError(TimeoutError):
    """Превышен бюджет времени на обучение"""
    pass


@dataclass
class TrainingTask:
    """Одна независимая задача обучения"""
    property_name: str
    property_index: int
    model_type: str
    rows: np.ndarray
    partition: CVPartition


class ModelManager:
    """
    Менеджер моделей
    - Кросс-валидация и финальное обучение семейств regression/svm/ann/ensemble
    - Параллельное выполнение задач (свойство, семейство)
    - Сохранение/загрузка моделей вместе с результатами
    - Интеграция с MLflow (опционально)
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.models_root = Path(self.config.models_root)
        self.logger = get_logger('ModelManager', level=self.config.log_level)

        if self.config.enable_mlflow:
            mlflow.set_tracking_uri(self.config.mlflow_tracking_uri)
            mlflow.set_experiment(self.config.mlflow_experiment_name)

    # ------------------------------------------------------------------
    # Обучение
    # ------------------------------------------------------------------

    def resolve_families(self, model_types: Sequence[str],
                         warnings: List[str]) -> Dict[str, BaseRegressor]:
        """Семейства по именам; неизвестные пропускаются с предупреждением"""
        families: Dict[str, BaseRegressor] = {}
        for model_type in model_types:
            family = get_family(model_type, self.config.training)
            if family is None:
                message = f"Неизвестный тип модели '{model_type}' пропущен"
                self.logger.warning(f"⚠️ {message}")
                warnings.append(message)
            elif model_type not in families:
                families[model_type] = family
        return families

    def train(self, features: np.ndarray, properties: np.ndarray,
              feature_names: Sequence[str], property_names: Sequence[str],
              model_types: Optional[Sequence[str]] = None) -> Tuple[Models, TrainingResults]:
        """
        Обучение всех семейств для всех свойств

        Args:
            features: Матрица признаков (n_samples, n_features)
            properties: Матрица свойств (n_samples, n_properties)
            feature_names: Имена признаков
            property_names: Имена свойств
            model_types: Семейства моделей (по умолчанию из конфигурации)

        Returns:
            (models, results)
        """
        training = self.config.training
        model_types = list(model_types if model_types is not None else training.model_types)
        SampleValidator.validate_min_samples(len(features), training.min_samples)

        start_time = time.time()
        standardization = StandardizationRecord.fit(features, properties, training.standardize)
        X = standardization.transform_features(features)
        Y = standardization.transform_properties(properties)

        results = TrainingResults(
            feature_names=list(feature_names),
            property_names=list(property_names),
            validation_method=training.validation_method,
            validation_param=training.validation_param,
            standardization=standardization,
            features=features,
            properties=properties,
        )

        families = self.resolve_families(model_types, results.warnings)
        tasks = self._plan_tasks(X, Y, results, families)

        deadline = start_time + training.time_budget if training.time_budget else None
        outcomes = self._run_tasks(tasks, X, Y, families, results.feature_names, deadline)

        # Барьер: агрегирование только после завершения всех задач
        models = self._collect(outcomes, results)
        results.correlations = compute_correlations(
            features, properties, results.feature_names, results.property_names,
            self.config.correlation.correlation_type
        )

        n_models = sum(len(by_type) for by_type in models.values())
        self.logger.info(f"✅ Обучено {n_models} моделей для {len(models)} свойств")
        if results.warnings:
            self.logger.info(f"⚠️ Предупреждений при обучении: {len(results.warnings)}")
        self.logger.log_performance("Обучение моделей", time.time() - start_time)

        if self.config.enable_mlflow:
            self.log_to_mlflow(models, results)

        return models, results

    def _plan_tasks(self, X: np.ndarray, Y: np.ndarray, results: TrainingResults,
                    families: Dict[str, BaseRegressor]) -> List[TrainingTask]:
        training = self.config.training
        tasks: List[TrainingTask] = []
        feature_rows = np.all(np.isfinite(X), axis=1)

        for j, property_name in enumerate(results.property_names):
            rows = np.flatnonzero(feature_rows & np.isfinite(Y[:, j]))
            dropped = len(X) - len(rows)
            if dropped:
                message = f"{property_name}: исключено {dropped} образцов с пропусками (NaN)"
                self.logger.warning(f"⚠️ {message}")
                results.warnings.append(message)

            if len(rows) < training.min_samples:
                message = (f"{property_name}: недостаточно образцов ({len(rows)}, "
                           f"минимум {training.min_samples}), свойство пропущено")
                self.logger.warning(f"⚠️ {message}")
                results.warnings.append(message)
                continue

            # Одно разбиение на свойство для всех семейств
            partition = make_partition(len(rows), training.validation_method,
                                       training.validation_param, training.random_state)
            for model_type in families:
                tasks.append(TrainingTask(property_name, j, model_type, rows, partition))

        return tasks

    def _run_tasks(self, tasks: List[TrainingTask], X: np.ndarray, Y: np.ndarray,
                   families: Dict[str, BaseRegressor], feature_names: List[str],
                   deadline: Optional[float]) -> List[TaskOutcome]:
        n_jobs = self.config.training.n_jobs
        if n_jobs < 0:
            n_jobs = os.cpu_count() or 1

        if n_jobs <= 1 or len(tasks) <= 1:
            return [self.run_task(task, X, Y, families[task.model_type], feature_names, deadline)
                    for task in tasks]

        self.logger.info(f"🔄 Параллельное обучение: {len(tasks)} задач, {n_jobs} потоков")
        outcomes: List[Optional[TaskOutcome]] = [None] * len(tasks)
        with ThreadPoolExecutor(max_workers=n_jobs) as executor:
            future_to_index = {
                executor.submit(self.run_task, task, X, Y, families[task.model_type],
                                feature_names, deadline): i
                for i, task in enumerate(tasks)
            }
            for future in as_completed(future_to_index):
                outcomes[future_to_index[future]] = future.result()
        return outcomes

    def run_task(self, task: TrainingTask, X: np.ndarray, Y: np.ndarray,
                 family: BaseRegressor, feature_names: List[str],
                 deadline: Optional[float] = None) -> TaskOutcome:
        """
        Обучение одного семейства для одного свойства

        Любая ошибка внутри семейства превращается в TaskOutcome с error,
        остальные задачи продолжают работу.
        """
        start_time = time.time()
        X_task = X[task.rows]
        y_task = Y[task.rows, task.property_index]

        try:
            ModelValidator.validate_training_arrays(X_task, y_task)
            model, metrics, importance = self.train_family(
                family, X_task, y_task, task.partition, task.property_name, feature_names, deadline
            )
            self.logger.log_training_end(task.property_name, task.model_type, {
                'RMSE': metrics.rmse_mean, 'R²': metrics.r2_mean, 'MAE': metrics.mae_mean
            })
            return TaskOutcome(task.property_name, task.model_type, model, metrics, importance,
                               duration=time.time() - start_time)

        except Exception as e:
            self.logger.log_error(f"обучение {task.model_type} для {task.property_name}", e)
            return TaskOutcome(task.property_name, task.model_type, error=str(e),
                               duration=time.time() - start_time)

    def train_family(self, family: BaseRegressor, X: np.ndarray, y: np.ndarray,
                     partition: CVPartition, property_name: str, feature_names: List[str],
                     deadline: Optional[float] = None
                     ) -> Tuple[ModelRecord, MetricsRecord, np.ndarray]:
        """
        Кросс-валидация и финальное обучение одного семейства

        Returns:
            (финальная модель, метрики, нормированная важность признаков)
        """
        optimize = self.config.training.optimize_hyperparams
        fold_scores, cv_models, fold_params = [], [], []

        for fold, (train_idx, test_idx) in enumerate(partition, 1):
            timeout = self._remaining(deadline)
            params = family.tune(X[train_idx], y[train_idx], optimize=optimize, timeout=timeout)
            fitted = family.fit(X[train_idx], y[train_idx], params)
            scores = score_fold(y[test_idx], fitted.predict(X[test_idx]))

            fold_scores.append(scores)
            cv_models.append(fitted)
            fold_params.append(params)
            self.logger.log_fold(family.name, fold, partition.n_folds, scores)

        # Гиперпараметры финальной модели - из фолда с лучшим RMSE
        best_params = fold_params[best_fold(fold_scores)]
        self._remaining(deadline)
        final = family.fit(X, y, best_params)

        raw_importance = family.importance(final, X, y)
        if raw_importance is None:
            raw_importance = spearman_importance(X, y)
        importance = normalize_importance(raw_importance)

        metrics = MetricsRecord(
            **summarize_folds(fold_scores),
            fold_scores=fold_scores,
            cv_models=cv_models,
            cv_partition=partition,
            best_params=best_params,
        )
        model = ModelRecord(
            model_type=family.name,
            property_name=property_name,
            feature_names=list(feature_names),
            fitted=final,
            details=family.describe(final),
        )
        return model, metrics, importance

    def _remaining(self, deadline: Optional[float]) -> Optional[float]:
        """Оставшееся время до дедлайна; исключение если он прошёл"""
        if deadline is None:
            return None
        remaining = deadline - time.time()
        if remaining <= 0:
            raise TrainingTimeoutError("Превышен бюджет времени на обучение")
        return remaining

    def _collect(self, outcomes: List[TaskOutcome], results: TrainingResults) -> Models:
        models: Models = {}
        for outcome in outcomes:
            if not outcome.ok:
                message = f"{outcome.property_name}: семейство {outcome.model_type} не обучено ({outcome.error})"
                self.logger.warning(f"⚠️ {message}")
                results.warnings.append(message)
                continue

            name = outcome.property_name
            models.setdefault(name, {})[outcome.model_type] = outcome.model
            results.model_metrics.setdefault(name, {})[outcome.model_type] = outcome.metrics
            results.feature_importance.setdefault(name, {})[outcome.model_type] = \
                importance_table(results.feature_names, outcome.importance)

        for name, tables in results.feature_importance.items():
            tables['average'] = average_importance(tables)

        # Порядок свойств как в property_names
        order = {name: i for i, name in enumerate(results.property_names)}
        return dict(sorted(models.items(), key=lambda item: order[item[0]]))

    # ------------------------------------------------------------------
    # MLflow
    # ------------------------------------------------------------------

    def log_to_mlflow(self, models: Models, results: TrainingResults):
        """Один запуск MLflow на каждую обученную пару (свойство, семейство)"""
        for property_name, by_type in results.model_metrics.items():
            for model_type, metrics in by_type.items():
                with mlflow.start_run(run_name=f"{property_name}_{model_type}"):
                    mlflow.log_param('property', property_name)
                    mlflow.log_param('model_type', model_type)
                    mlflow.log_param('validation', f"{results.validation_method}:{results.validation_param}")
                    mlflow.log_param('standardized', results.standardized)
                    mlflow.log_params({f"hp_{k}": v for k, v in metrics.best_params.items()})
                    for key, value in metrics.summary().items():
                        if np.isfinite(value):
                            mlflow.log_metric(key, value)

    # ------------------------------------------------------------------
    # Сохранение и загрузка
    # ------------------------------------------------------------------

    def build_metadata(self, models: Models, results: TrainingResults) -> Dict[str, Any]:
        """Метаданные для meta.json"""
        return {
            'feature_names': results.feature_names,
            'property_names': results.property_names,
            'standardized': results.standardized,
            'standardization': results.standardization.to_dict(),
            'validation_method': results.validation_method,
            'validation_param': results.validation_param,
            'models': {name: list(by_type.keys()) for name, by_type in models.items()},
            'metrics': {
                name: {model_type: metrics.summary() for model_type, metrics in by_type.items()}
                for name, by_type in results.model_metrics.items()
            },
            'warnings': results.warnings,
            'train_date': results.train_date,
            'saved_at': datetime.now().isoformat(),
        }

    def save_bundle(self, models: Models, results: TrainingResults, name: str = 'default') -> str:
        """
        Сохранение моделей и результатов одним набором

        Args:
            models: Обученные модели
            results: Результаты обучения
            name: Имя набора (поддиректория models_root)

        Returns:
            Путь к директории набора
        """
        try:
            bundle_dir = self.models_root / name
            bundle_dir.mkdir(parents=True, exist_ok=True)

            with open(bundle_dir / 'models.pkl', 'wb') as f:
                pickle.dump({'models': models, 'results': results}, f)
            with open(bundle_dir / 'meta.json', 'w', encoding='utf-8') as f:
                json.dump(self.build_metadata(models, results), f, indent=2, ensure_ascii=False,
                          default=float)

            self.logger.log_model_saving(name, str(bundle_dir))
            return str(bundle_dir)

        except Exception as e:
            self.logger.error(f"❌ Ошибка сохранения моделей '{name}': {e}")
            raise

    def load_bundle(self, name: str = 'default') -> Tuple[Models, TrainingResults]:
        """
        Загрузка моделей и результатов

        Raises:
            FileNotFoundError: если набора нет
            BundleError: если meta.json не согласован с сохранёнными результатами
        """
        bundle_dir = self.models_root / name
        models_path = bundle_dir / 'models.pkl'
        meta_path = bundle_dir / 'meta.json'

        if not models_path.exists() or not meta_path.exists():
            raise FileNotFoundError(f"Модели или метаданные не найдены: {bundle_dir}")

        with open(meta_path, 'r', encoding='utf-8') as f:
            metadata = json.load(f)
        ModelValidator.validate_metadata(metadata)

        with open(models_path, 'rb') as f:
            payload = pickle.load(f)
        models, results = payload['models'], payload['results']

        if metadata['feature_names'] != results.feature_names:
            raise BundleError("Список признаков в meta.json не совпадает с сохранёнными результатами")
        if metadata['standardized'] != results.standardized:
            raise BundleError("Флаг стандартизации в meta.json не совпадает с сохранёнными результатами")
        for property_name, by_type in models.items():
            for model_type, model in by_type.items():
                if model.feature_names != results.feature_names:
                    raise BundleError(
                        f"Модель {model_type} для {property_name} обучена на другом списке признаков"
                    )

        self.logger.info(f"✅ Модели загружены: {bundle_dir}")
        return models, results

    def list_bundles(self) -> List[Dict[str, Any]]:
        """Сохранённые наборы моделей с краткой информацией"""
        bundles = []
        if not self.models_root.exists():
            return bundles
        for meta_path in sorted(self.models_root.glob('*/meta.json')):
            try:
                with open(meta_path, 'r', encoding='utf-8') as f:
                    metadata = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                self.logger.warning(f"⚠️ {meta_path.parent.name}: ошибка чтения метаданных - {e}")
                continue
            bundles.append({
                'name': meta_path.parent.name,
                'properties': metadata.get('property_names', []),
                'features_count': len(metadata.get('feature_names', [])),
                'models': metadata.get('models', {}),
                'train_date': metadata.get('train_date'),
            })
        return bundles

    def get_info(self) -> Dict[str, Any]:
        """Информация о менеджере"""
        return {
            'models_root': str(self.models_root),
            'model_types': self.config.training.model_types,
            'validation': f"{self.config.training.validation_method}:{self.config.training.validation_param}",
            'mlflow_enabled': self.config.enable_mlflow,
            'mlflow_tracking_uri': self.config.mlflow_tracking_uri,
        }
