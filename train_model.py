#!/usr/bin/env python3
"""
🚀 Простой интерфейс для обучения моделей свойств PGCit

Быстрый запуск обучения на образцах из JSON:
- Линейная регрессия (пошаговый отбор признаков)
- SVM, нейросеть, ансамбль деревьев
- Автоматическая настройка гиперпараметров
- Сохранение набора моделей вместе с результатами
"""

import argparse
import sys

from pgcit_ml.systems.property_system import PropertySystem
from pgcit_ml.utils.config import Config, TrainingConfig, SUPPORTED_MODEL_TYPES, SUPPORTED_VALIDATION_METHODS
from pgcit_ml.utils.sample_io import load_samples


def train(samples_path: str, properties: list = None, features: list = None,
          model_types: list = None, validation: str = 'kfold', param: float = 5,
          standardize: bool = True, optimize: bool = True, name: str = 'default',
          models_root: str = 'models') -> bool:
    """
    Обучение моделей свойств

    Args:
        samples_path: JSON-файл с образцами
        properties: Целевые свойства (None - все найденные)
        features: Входные признаки (None - все найденные)
        model_types: Семейства моделей
        validation: kfold или holdout
        param: Число фолдов или доля/число тестовых образцов
        standardize: Стандартизовать признаки и свойства
        optimize: Искать гиперпараметры
        name: Имя набора моделей
        models_root: Папка для моделей
    """
    print(f"🤖 Обучение моделей свойств по {samples_path}")
    print(f"   Валидация: {validation}:{param}, стандартизация: {standardize}, оптимизация: {optimize}")

    try:
        config = Config(
            models_root=models_root,
            log_level='INFO',
            training=TrainingConfig(
                model_types=list(model_types or ['regression', 'svm', 'ann']),
                validation_method=validation,
                validation_param=param,
                standardize=standardize,
                optimize_hyperparams=optimize,
            )
        )
        system = PropertySystem(config)

        samples = load_samples(samples_path)
        print(f"📂 Загружено образцов: {len(samples)}")

        print(f"\n🚀 Запуск эксперимента...")
        models, results = system.run_experiment(
            samples,
            target_properties=properties,
            input_features=features,
            save_as=name
        )

        print(f"\n📊 Результаты обучения:")
        comparison = system.compare_models(results)
        for _, row in comparison.iterrows():
            print(f"   {row['property']} / {row['model_type']}: "
                  f"R²={row['r2_mean']:.4f} ± {row['r2_std']:.4f}, "
                  f"RMSE={row['rmse_mean']:.4f}, MAE={row['mae_mean']:.4f}")

        if results.warnings:
            print(f"\n⚠️ Предупреждения:")
            for warning in results.warnings:
                print(f"   {warning}")

        print(f"\n💾 Набор моделей сохранен: {models_root}/{name}")
        print(f"\n🎉 Обучено свойств: {len(system.trained_properties(models))}")
        return True

    except Exception as e:
        print(f"\n❌ Ошибка обучения: {e}")
        import traceback
        traceback.print_exc()
        return False


def list_available_models(models_root: str = 'models'):
    """Показать сохраненные наборы моделей"""
    system = PropertySystem(Config(models_root=models_root))
    bundles = system.model_manager.list_bundles()
    if not bundles:
        print(f"📁 Сохраненных моделей в {models_root} нет")
        return

    print("📋 Доступные наборы моделей:")
    for bundle in bundles:
        print(f"   {bundle['name']}:")
        print(f"     Свойств: {len(bundle['properties'])}")
        print(f"     Признаков: {bundle['features_count']}")
        print(f"     Дата: {bundle.get('train_date', 'unknown')}")
        print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='🚀 Обучение моделей свойств PGCit')
    parser.add_argument('samples', nargs='?',
                        help='JSON-файл с образцами')
    parser.add_argument('--list', action='store_true',
                        help='Показать сохраненные наборы моделей')
    parser.add_argument('--properties', '-p', nargs='+', default=None,
                        help='Целевые свойства (по умолчанию: все)')
    parser.add_argument('--features', '-f', nargs='+', default=None,
                        help='Входные признаки (по умолчанию: все)')
    parser.add_argument('--models', '-m', nargs='+', choices=SUPPORTED_MODEL_TYPES,
                        default=['regression', 'svm', 'ann'],
                        help='Семейства моделей (по умолчанию: regression svm ann)')
    parser.add_argument('--validation', choices=SUPPORTED_VALIDATION_METHODS, default='kfold',
                        help='Метод валидации (по умолчанию: kfold)')
    parser.add_argument('--param', type=float, default=5,
                        help='Число фолдов или доля тестовой выборки (по умолчанию: 5)')
    parser.add_argument('--no-standardize', action='store_true',
                        help='Не стандартизовать данные')
    parser.add_argument('--no-optimize', action='store_true',
                        help='Не искать гиперпараметры')
    parser.add_argument('--name', '-n', default='default',
                        help='Имя набора моделей (по умолчанию: default)')
    parser.add_argument('--models-root', default='models',
                        help='Папка для моделей (по умолчанию: models)')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list:
        list_available_models(args.models_root)
        return

    if not args.samples:
        parser.error('требуется путь к JSON-файлу с образцами')

    print("🚀 Запуск обучения моделей свойств")
    print("=" * 50)

    success = train(
        samples_path=args.samples,
        properties=args.properties,
        features=args.features,
        model_types=args.models,
        validation=args.validation,
        param=args.param,
        standardize=not args.no_standardize,
        optimize=not args.no_optimize,
        name=args.name,
        models_root=args.models_root
    )

    if success:
        print("\n✅ Обучение завершено успешно!")
        sys.exit(0)
    else:
        print("\n❌ Обучение завершено с ошибками")
        sys.exit(1)


if __name__ == "__main__":
    main()
