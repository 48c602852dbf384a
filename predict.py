#!/usr/bin/env python3
"""
🔮 Простой интерфейс для предсказаний

Быстрое получение предсказаний от обученных моделей:
- Загрузка набора моделей и результатов обучения
- Извлечение признаков новых образцов
- Предсказание свойств с доверительными интервалами
"""

import argparse
import sys

import numpy as np

from pgcit_ml.systems.property_system import PropertySystem
from pgcit_ml.utils.config import Config
from pgcit_ml.utils.sample_io import load_samples


def get_predictions(samples_path: str, name: str = 'default', model_type: str = 'best',
                    level: float = 0.95, output: str = None, models_root: str = 'models'):
    """
    Получение предсказаний от обученных моделей

    Args:
        samples_path: JSON-файл с новыми образцами
        name: Имя набора моделей
        model_type: 'best' или семейство моделей
        level: Уровень доверия для интервалов
        output: CSV-файл для результатов (None - только вывод)
        models_root: Папка с моделями
    """
    print(f"🔮 Предсказание свойств для {samples_path} (модели: {name})")

    try:
        config = Config(models_root=models_root, log_level='WARNING')
        system = PropertySystem(config)

        # 1. Загружаем модели
        print("📥 Загрузка моделей...")
        models, results = system.load_models(name)
        print(f"✅ Модели загружены: {len(system.trained_properties(models))} свойств, "
              f"{len(results.feature_names)} признаков")

        # 2. Загружаем образцы
        print("📊 Загрузка образцов...")
        samples = load_samples(samples_path)
        print(f"✅ Образцы загружены: {len(samples)}")

        # 3. Предсказываем
        print("⚙️ Предсказание...")
        predictions, confidence = system.predict(
            samples, models, results,
            model_type=model_type,
            confidence_interval=True,
            confidence_level=level
        )

        if not predictions:
            print("⚠️ Не удалось получить ни одного предсказания")
            return None

        print(f"\n📈 Результаты ({int(level * 100)}% интервал):")
        for property_name, prediction in predictions.items():
            interval = confidence.get(property_name)
            print(f"   {property_name} [{prediction.model_type}]:")
            for i, value in enumerate(prediction.values):
                if interval is not None and np.isfinite(value):
                    print(f"     #{i + 1}: {value:.4f} "
                          f"[{interval.lower[i]:.4f}; {interval.upper[i]:.4f}]")
                else:
                    print(f"     #{i + 1}: {value:.4f}")

        frame = system.predictor.to_frame(predictions, confidence)
        if output:
            frame.to_csv(output, index=False)
            print(f"\n💾 Результаты сохранены: {output}")

        return frame

    except Exception as e:
        print(f"❌ Ошибка предсказания: {e}")
        return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='🔮 Предсказание свойств PGCit')
    parser.add_argument('samples',
                        help='JSON-файл с новыми образцами')
    parser.add_argument('--name', '-n', default='default',
                        help='Имя набора моделей (по умолчанию: default)')
    parser.add_argument('--model', '-m', default='best',
                        help="Семейство моделей или 'best' (по умолчанию: best)")
    parser.add_argument('--level', type=float, default=0.95,
                        help='Уровень доверия (по умолчанию: 0.95)')
    parser.add_argument('--output', '-o', default=None,
                        help='CSV-файл для результатов')
    parser.add_argument('--models-root', default='models',
                        help='Папка с моделями (по умолчанию: models)')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    print("🔮 Система предсказаний свойств")
    print("=" * 50)

    result = get_predictions(
        samples_path=args.samples,
        name=args.name,
        model_type=args.model,
        level=args.level,
        output=args.output,
        models_root=args.models_root
    )

    if result is None:
        print("\n❌ Не удалось получить предсказания")
        sys.exit(1)

    print("\n✅ Предсказания получены успешно!")


if __name__ == "__main__":
    main()
