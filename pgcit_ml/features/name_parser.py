#!/usr/bin/env python3
"""
🏷️ Разбор имён признаков и свойств

Имя вида `<домен>_<путь>` (например `tga_stage2_onset`, `dsc_heating_Tg_peak`)
разбирается в NamePath: домен + оставшиеся токены. Разбор не зависит от образца;
сопоставление многословных ключей (растворители, переходы с `_` в имени)
выполняется уже при обходе конкретного образца через match_key.
"""

import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence, Tuple

import numpy as np

FEATURE_DOMAINS = ('synthesis', 'ftir', 'tga', 'dsc_heating', 'dsc_cooling', 'solubility')
PROPERTY_DOMAINS = ('synthesis', 'ftir', 'tga', 'dsc', 'solubility', 'other')


@dataclass(frozen=True)
class NamePath:
    """Разобранное имя: домен и токены пути внутри домена"""
    domain: str
    tokens: Tuple[str, ...]
    name: str

    @property
    def rest(self) -> str:
        """Путь без домена, склеенный обратно через `_`"""
        return '_'.join(self.tokens)


def parse_name(name: str, domains: Sequence[str]) -> Optional[NamePath]:
    """
    Разбор имени по списку доменов

    Домены сравниваются по самому длинному префиксу, поэтому `dsc_heating_...`
    не перехватывается доменом `dsc`.

    Args:
        name: Имя признака или свойства
        domains: Допустимые домены

    Returns:
        NamePath или None если домен не распознан или путь пуст
    """
    if not isinstance(name, str):
        return None

    for domain in sorted(domains, key=len, reverse=True):
        prefix = f"{domain}_"
        if name.startswith(prefix) and len(name) > len(prefix):
            tokens = tuple(name[len(prefix):].split('_'))
            return NamePath(domain=domain, tokens=tokens, name=name)
    return None


def match_key(mapping: Any, tokens: Sequence[str],
              exclude: Iterable[str] = ()) -> Tuple[Optional[str], Tuple[str, ...]]:
    """
    Поиск ключа словаря, совпадающего с началом списка токенов

    Побеждает самое длинное совпадение: для токенов `['water', 'ethanol', 'x']`
    ключ `water_ethanol` предпочтительнее ключа `water`.

    Returns:
        (ключ, оставшиеся токены) или (None, все токены)
    """
    if not isinstance(mapping, Mapping):
        return None, tuple(tokens)

    excluded = set(exclude)
    for size in range(len(tokens), 0, -1):
        candidate = '_'.join(tokens[:size])
        if candidate in mapping and candidate not in excluded:
            return candidate, tuple(tokens[size:])
    return None, tuple(tokens)


def is_numeric_scalar(value: Any) -> bool:
    """Число (не bool), в том числе скаляр numpy"""
    if isinstance(value, (bool, np.bool_)):
        return False
    if isinstance(value, numbers.Real):
        return True
    if isinstance(value, np.ndarray) and value.ndim == 0:
        return np.issubdtype(value.dtype, np.number) and not np.issubdtype(value.dtype, np.bool_)
    return False


def as_scalar(value: Any) -> float:
    """Привести значение к float; всё нечисловое превращается в NaN"""
    if not is_numeric_scalar(value):
        return math.nan
    return float(value)


def section(container: Any, *keys: str) -> Optional[Mapping]:
    """Спуск по вложенным словарям; None если какого-то уровня нет"""
    current = container
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current if isinstance(current, Mapping) else None


def is_processed(measurement: Optional[Mapping]) -> bool:
    """Флаг `processed` у записи измерения"""
    return bool(measurement is not None and measurement.get('processed', False))


def format_wavenumber(wavenumber: float) -> str:
    """Волновое число для имени признака: целое без дробной части"""
    value = float(wavenumber)
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"
