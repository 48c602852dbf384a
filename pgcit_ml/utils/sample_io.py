#!/usr/bin/env python3
"""
📂 Загрузка образцов из JSON

Файл содержит либо список образцов, либо объект с ключом `samples`,
либо один образец.
"""

import json
from pathlib import Path
from typing import Any, List, Mapping

from .validators import ArgumentError, SampleValidator


def load_samples(path: str) -> List[Mapping]:
    """
    Чтение образцов из JSON-файла

    Args:
        path: Путь к файлу

    Returns:
        Список образцов
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Файл с образцами не найден: {path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        try:
            payload: Any = json.load(f)
        except json.JSONDecodeError as e:
            raise ArgumentError(f"Некорректный JSON в {path}: {e}") from e

    if isinstance(payload, Mapping) and 'samples' in payload:
        payload = payload['samples']
    return SampleValidator.normalize_samples(payload)
