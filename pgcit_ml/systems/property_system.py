#!/usr/bin/env python3
"""
🧪 PropertySystem - полный цикл анализа свойств полимеров
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..core.base_system import BaseSystem
from ..core.model_manager import Models
from ..core.records import TrainingResults
from ..utils.config import Config


class PropertySystem(BaseSystem):
    """
    Система обучения моделей свойств и анализа корреляций
    """
    def __init__(self, config: Optional[Config] = None):
        super().__init__(config)
        self.logger.debug("🧪 PropertySystem инициализирована")

    def run_experiment(self, samples: Any, target_properties: Optional[Sequence[str]] = None,
                       input_features: Optional[Sequence[str]] = None,
                       model_types: Optional[Sequence[str]] = None,
                       save_as: Optional[str] = None) -> Tuple[Models, TrainingResults]:
        """
        Запуск полного эксперимента

        Args:
            samples: Образцы
            target_properties: Целевые свойства
            input_features: Входные признаки
            model_types: Семейства моделей
            save_as: Имя набора для сохранения (None - не сохранять)

        Returns:
            (models, results)
        """
        self.logger.info("🚀 Запуск эксперимента по свойствам PGCit")

        try:
            self.logger.info("🤖 Шаг 1: Извлечение признаков и обучение моделей...")
            models, results = self.train_models(samples, target_properties, input_features, model_types)

            self.logger.info("📊 Шаг 2: Сравнение моделей...")
            comparison = self.compare_models(results)
            for _, row in comparison.iterrows():
                self.logger.info(
                    f"   📊 {row['property']} / {row['model_type']}: "
                    f"R²={row['r2_mean']:.4f} ± {row['r2_std']:.4f}, RMSE={row['rmse_mean']:.4f}"
                )

            self.logger.info("📈 Шаг 3: Наиболее важные признаки...")
            for property_name in results.property_names:
                tables = results.feature_importance.get(property_name, {})
                if 'average' in tables and not tables['average'].empty:
                    top = tables['average'].iloc[0]
                    self.logger.info(f"   🏅 {property_name}: {top['feature']} ({top['importance']:.3f})")

            if save_as:
                self.logger.info("💾 Шаг 4: Сохранение моделей...")
                self.save_models(models, results, save_as)

            self.logger.info("✅ Эксперимент завершен успешно")
            return models, results

        except Exception as e:
            self.logger.error(f"❌ Ошибка в эксперименте: {e}")
            raise

    def compare_models(self, results: TrainingResults) -> pd.DataFrame:
        """Метрики всех моделей, лучшие по R² сверху внутри свойства"""
        frame = results.metrics_frame()
        if frame.empty:
            return frame
        return frame.sort_values(['property', 'r2_mean'], ascending=[True, False]).reset_index(drop=True)

    def get_model_info(self, models: Models, results: TrainingResults,
                       property_name: str) -> Optional[Dict[str, Any]]:
        """Информация о моделях одного свойства"""
        by_type = models.get(property_name)
        if not by_type:
            return None
        metrics = results.model_metrics.get(property_name, {})
        return {
            'property': property_name,
            'features_count': len(results.feature_names),
            'standardized': results.standardized,
            'training_date': results.train_date,
            'models': {
                model_type: {
                    'params': model.params,
                    'details': model.details,
                    'metrics': metrics[model_type].summary() if model_type in metrics else {},
                }
                for model_type, model in by_type.items()
            },
        }

    def trained_properties(self, models: Models) -> List[str]:
        """Свойства, для которых есть хотя бы одна модель"""
        return [name for name, by_type in models.items() if by_type]
