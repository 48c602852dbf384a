#!/usr/bin/env python3
"""
🤖 Семейства моделей

Единый интерфейс BaseRegressor (fit / predict / tune / importance / describe)
для четырёх семейств:
- regression: линейная регрессия (statsmodels OLS), пошаговый отбор по AIC
- svm: SVR (sklearn) с поиском C, epsilon и ядра
- ann: полносвязная сеть MLPRegressor с поиском ширины и активации
- ensemble: бэггинг деревьев (sklearn) или бустинг (LightGBM)
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import optuna
import statsmodels.api as sm
from lightgbm import LGBMRegressor
from sklearn.ensemble import BaggingRegressor
from sklearn.neural_network import MLPRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVR
from sklearn.tree import DecisionTreeRegressor

from ..utils.config import TrainingConfig
from .importance import perturbation_importance
from .records import FittedModel
from .tuning import inner_cv_loss, run_study, safe_objective


class BaseRegressor(ABC):
    """Базовый класс семейства моделей"""

    name: str = 'base'

    def __init__(self, config: Optional[TrainingConfig] = None):
        self.config = config or TrainingConfig()

    @property
    def n_trials(self) -> int:
        """Количество испытаний Optuna (0 - без поиска)"""
        return 0

    @abstractmethod
    def default_params(self, X: np.ndarray, y: np.ndarray) -> Dict[str, Any]:
        """Гиперпараметры без оптимизации"""

    def build(self, params: Dict[str, Any]) -> Any:
        """
        Необученный оценщик sklearn-совместимого вида

        Нужен только базовому fit; семейство со своим fit может его не определять.
        """
        raise NotImplementedError(f"Семейство {self.name} не строит оценщик через build")

    def suggest(self, trial: optuna.Trial) -> Dict[str, Any]:
        """Пространство поиска"""
        return {}

    def fit(self, X: np.ndarray, y: np.ndarray, params: Dict[str, Any]) -> FittedModel:
        """Обучение с заданными гиперпараметрами"""
        estimator = self.build(params)
        estimator.fit(X, y)
        return FittedModel(estimator=estimator, params=dict(params))

    def predict(self, fitted: FittedModel, X: np.ndarray) -> np.ndarray:
        return fitted.predict(X)

    def tune(self, X: np.ndarray, y: np.ndarray, optimize: bool = True,
             timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Подбор гиперпараметров на обучающей части фолда

        Args:
            X: Признаки
            y: Таргет
            optimize: Выполнять ли поиск (иначе значения по умолчанию)
            timeout: Ограничение по времени для поиска

        Returns:
            Словарь гиперпараметров
        """
        defaults = self.default_params(X, y)
        if not optimize or self.n_trials <= 0 or len(y) < 2:
            return defaults

        def loss(trial: optuna.Trial) -> float:
            params = {**defaults, **self.suggest(trial)}
            return inner_cv_loss(
                lambda X_tr, y_tr, X_te: self.fit(X_tr, y_tr, params).predict(X_te),
                X, y, n_folds=self.config.inner_cv_folds,
                random_state=self.config.random_state
            )

        best, value = run_study(
            safe_objective(loss, self.name), n_trials=self.n_trials,
            random_state=self.config.random_state, timeout=timeout, study_name=self.name
        )
        if not math.isfinite(value):
            return defaults
        return {**defaults, **best}

    def importance(self, fitted: FittedModel, X: np.ndarray, y: np.ndarray) -> Optional[np.ndarray]:
        """Ненормированная важность признаков; None - семейство её не даёт"""
        return perturbation_importance(fitted.predict, X, self.config.perturbation_scale)

    def describe(self, fitted: FittedModel) -> Dict[str, Any]:
        """Внутренности модели для ModelRecord.details"""
        return {}


# ---------------------------------------------------------------------------
# regression
# ---------------------------------------------------------------------------

class LinearFit:
    """Результат OLS на подмножестве колонок"""

    def __init__(self, columns: List[int], n_features: int, result):
        self.columns = list(columns)
        self.n_features = n_features
        params = np.asarray(result.params, dtype=float)
        pvalues = np.asarray(result.pvalues, dtype=float)
        self.intercept = float(params[0])
        self.coefficients = params[1:]
        self.pvalues = pvalues[1:]
        self.aic = float(result.aic)
        self.rsquared = float(result.rsquared) if np.isfinite(result.rsquared) else math.nan

    def full_coefficients(self) -> np.ndarray:
        """Коэффициенты для всех признаков (0 для не отобранных)"""
        coef = np.zeros(self.n_features)
        coef[self.columns] = self.coefficients
        return coef

    def predict(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        if not self.columns:
            return np.full(len(X), self.intercept)
        return self.intercept + X[:, self.columns] @ self.coefficients


def _ols(X: np.ndarray, y: np.ndarray, columns: List[int]):
    design = np.column_stack([np.ones(len(y)), X[:, columns]]) if columns else np.ones((len(y), 1))
    return sm.OLS(y, design).fit()


def stepwise_select(X: np.ndarray, y: np.ndarray, p_enter: float = 0.05,
                    p_remove: float = 0.10) -> Tuple[List[int], Any]:
    """
    Двунаправленный пошаговый отбор признаков

    Старт с полной модели, если данных хватает (n > p + 1), иначе с пустой.
    На каждом шаге сначала пробуем удалить признак с p >= p_remove, не
    ухудшая AIC; затем добавить признак с p <= p_enter, улучшающий AIC.

    Returns:
        (отобранные колонки, результат statsmodels)
    """
    n_samples, n_features = X.shape
    selected = list(range(n_features)) if n_samples > n_features + 1 else []
    current = _ols(X, y, selected)

    for _ in range(4 * n_features + 1):
        # Удаление
        if selected:
            pvalues = np.asarray(current.pvalues, dtype=float)[1:]
            best = None
            for position, column in enumerate(selected):
                if not pvalues[position] >= p_remove:
                    continue
                candidate = _ols(X, y, [c for c in selected if c != column])
                if candidate.aic <= current.aic and (best is None or candidate.aic < best[1].aic):
                    best = (column, candidate)
            if best is not None:
                selected.remove(best[0])
                current = best[1]
                continue

        # Добавление (нужна хотя бы одна степень свободы остатков)
        best = None
        if len(selected) + 2 < n_samples:
            for column in range(n_features):
                if column in selected:
                    continue
                columns = sorted(selected + [column])
                candidate = _ols(X, y, columns)
                p_value = float(np.asarray(candidate.pvalues)[1 + columns.index(column)])
                if p_value <= p_enter and candidate.aic < current.aic and \
                        (best is None or candidate.aic < best[1].aic):
                    best = (column, candidate)
        if best is None:
            break
        selected = sorted(selected + [best[0]])
        current = best[1]

    return selected, current


class LinearRegressionFamily(BaseRegressor):
    """Линейная регрессия: обычная или пошаговая"""

    name = 'regression'

    def default_params(self, X: np.ndarray, y: np.ndarray) -> Dict[str, Any]:
        return {'stepwise': False}

    def tune(self, X: np.ndarray, y: np.ndarray, optimize: bool = True,
             timeout: Optional[float] = None) -> Dict[str, Any]:
        # Оптимизация для линейной модели это пошаговый отбор
        return {'stepwise': bool(optimize)}

    def fit(self, X: np.ndarray, y: np.ndarray, params: Dict[str, Any]) -> FittedModel:
        n_features = X.shape[1]
        if params.get('stepwise'):
            columns, result = stepwise_select(X, y, self.config.p_enter, self.config.p_remove)
        else:
            columns = list(range(n_features))
            result = _ols(X, y, columns)
        return FittedModel(estimator=LinearFit(columns, n_features, result), params=dict(params))

    def importance(self, fitted: FittedModel, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        return np.abs(fitted.estimator.full_coefficients())

    def describe(self, fitted: FittedModel) -> Dict[str, Any]:
        linear: LinearFit = fitted.estimator
        return {
            'intercept': linear.intercept,
            'coefficients': linear.full_coefficients().tolist(),
            'selected_columns': linear.columns,
            'pvalues': linear.pvalues.tolist(),
            'aic': linear.aic,
            'rsquared': linear.rsquared,
        }


# ---------------------------------------------------------------------------
# svm
# ---------------------------------------------------------------------------

class SVMFamily(BaseRegressor):
    """Регрессия опорных векторов"""

    name = 'svm'

    @property
    def n_trials(self) -> int:
        return self.config.svm_trials

    def default_params(self, X: np.ndarray, y: np.ndarray) -> Dict[str, Any]:
        # Масштаб по межквартильному размаху таргета
        q75, q25 = np.percentile(y, [75, 25])
        scale = (q75 - q25) / 1.349
        if not np.isfinite(scale) or scale <= 0:
            return {'kernel': 'rbf', 'C': 1.0, 'epsilon': 0.1}
        return {'kernel': 'rbf', 'C': float(scale), 'epsilon': float(scale / 10.0)}

    def suggest(self, trial: optuna.Trial) -> Dict[str, Any]:
        return {
            'C': trial.suggest_float('C', 1e-3, 1e3, log=True),
            'epsilon': trial.suggest_float('epsilon', 1e-3, 1.0, log=True),
            'kernel': trial.suggest_categorical('kernel', ['linear', 'rbf']),
        }

    def build(self, params: Dict[str, Any]) -> Any:
        return Pipeline([
            ('scaler', StandardScaler()),
            ('model', SVR(kernel=params['kernel'], C=float(params['C']),
                          epsilon=float(params['epsilon']), gamma='scale')),
        ])

    def describe(self, fitted: FittedModel) -> Dict[str, Any]:
        svr = fitted.estimator.named_steps['model']
        return {
            'kernel': svr.kernel,
            'n_support_vectors': int(len(svr.support_)),
            'intercept': float(np.ravel(svr.intercept_)[0]),
        }


# ---------------------------------------------------------------------------
# ann
# ---------------------------------------------------------------------------

class NeuralNetworkFamily(BaseRegressor):
    """Полносвязная сеть с одним скрытым слоем"""

    name = 'ann'
    # Разбиение train/val/test при оптимизации
    DIVIDE = (0.70, 0.15, 0.15)
    RESTARTS = 3

    @property
    def n_trials(self) -> int:
        return self.config.ann_trials

    def default_params(self, X: np.ndarray, y: np.ndarray) -> Dict[str, Any]:
        return {'width': self.config.ann_default_width, 'activation': 'relu', 'divide': False}

    def tune(self, X: np.ndarray, y: np.ndarray, optimize: bool = True,
             timeout: Optional[float] = None) -> Dict[str, Any]:
        params = super().tune(X, y, optimize=optimize, timeout=timeout)
        params['divide'] = bool(optimize)
        return params

    def suggest(self, trial: optuna.Trial) -> Dict[str, Any]:
        return {
            'width': trial.suggest_int('width', 1, 20),
            'activation': trial.suggest_categorical('activation', ['relu', 'tanh']),
        }

    def build(self, params: Dict[str, Any], seed: Optional[int] = None) -> Any:
        return MLPRegressor(
            hidden_layer_sizes=(int(params['width']),),
            activation=params['activation'],
            solver='lbfgs',
            max_iter=self.config.ann_max_iter,
            random_state=self.config.random_state if seed is None else seed,
        )

    def fit(self, X: np.ndarray, y: np.ndarray, params: Dict[str, Any]) -> FittedModel:
        n_samples = len(y)
        if not params.get('divide') or n_samples < 7:
            estimator = self.build(params)
            estimator.fit(X, y)
            return FittedModel(estimator=estimator, params=dict(params))

        # 70/15/15: обучаем на train, выбираем перезапуск по val, test только для отчёта
        rng = np.random.default_rng(self.config.random_state)
        order = rng.permutation(n_samples)
        n_train = max(2, int(round(self.DIVIDE[0] * n_samples)))
        n_val = max(1, int(round(self.DIVIDE[1] * n_samples)))
        train, val, test = order[:n_train], order[n_train:n_train + n_val], order[n_train + n_val:]

        best_estimator, best_loss = None, math.inf
        for restart in range(self.RESTARTS):
            estimator = self.build(params, seed=self.config.random_state + restart)
            estimator.fit(X[train], y[train])
            loss = float(np.mean((estimator.predict(X[val]) - y[val]) ** 2))
            if best_estimator is None or loss < best_loss:
                best_estimator, best_loss = estimator, loss

        info = {'val_rmse': math.sqrt(best_loss)}
        if len(test):
            info['test_rmse'] = float(np.sqrt(np.mean((best_estimator.predict(X[test]) - y[test]) ** 2)))
        return FittedModel(estimator=best_estimator, params=dict(params), info=info)

    def describe(self, fitted: FittedModel) -> Dict[str, Any]:
        network = fitted.estimator
        return {
            'hidden_layer_sizes': list(network.hidden_layer_sizes),
            'activation': network.activation,
            'n_iter': int(network.n_iter_),
            'loss': float(network.loss_),
            **fitted.info,
        }


# ---------------------------------------------------------------------------
# ensemble
# ---------------------------------------------------------------------------

class EnsembleFamily(BaseRegressor):
    """Ансамбль деревьев: бэггинг (sklearn) или бустинг (LightGBM)"""

    name = 'ensemble'

    @property
    def n_trials(self) -> int:
        return self.config.ensemble_trials

    def default_params(self, X: np.ndarray, y: np.ndarray) -> Dict[str, Any]:
        return {
            'method': 'bag',
            'n_estimators': self.config.ensemble_default_cycles,
            'min_leaf': self.config.ensemble_default_min_leaf,
        }

    def suggest(self, trial: optuna.Trial) -> Dict[str, Any]:
        return {
            'method': trial.suggest_categorical('method', ['bag', 'boosted']),
            'n_estimators': trial.suggest_int('n_estimators', 10, 100),
            'min_leaf': trial.suggest_int('min_leaf', 1, 20),
        }

    def build(self, params: Dict[str, Any]) -> Any:
        if params['method'] == 'boosted':
            return LGBMRegressor(
                n_estimators=int(params['n_estimators']),
                min_child_samples=int(params['min_leaf']),
                min_data_in_bin=1,
                learning_rate=0.1,
                random_state=self.config.random_state,
                verbose=-1,
            )
        return BaggingRegressor(
            estimator=DecisionTreeRegressor(min_samples_leaf=int(params['min_leaf'])),
            n_estimators=int(params['n_estimators']),
            random_state=self.config.random_state,
        )

    def importance(self, fitted: FittedModel, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        estimator = fitted.estimator
        if isinstance(estimator, LGBMRegressor):
            return np.asarray(estimator.booster_.feature_importance(importance_type='gain'), dtype=float)
        return np.mean([tree.feature_importances_ for tree in estimator.estimators_], axis=0)

    def describe(self, fitted: FittedModel) -> Dict[str, Any]:
        return {
            'method': fitted.params['method'],
            'n_estimators': int(fitted.params['n_estimators']),
            'min_leaf': int(fitted.params['min_leaf']),
        }


MODEL_FAMILIES = {
    'regression': LinearRegressionFamily,
    'svm': SVMFamily,
    'ann': NeuralNetworkFamily,
    'ensemble': EnsembleFamily,
}


def get_family(model_type: str, config: Optional[TrainingConfig] = None) -> Optional[BaseRegressor]:
    """Семейство по имени; None для неизвестного имени"""
    family_cls = MODEL_FAMILIES.get(model_type)
    return family_cls(config) if family_cls is not None else None
