#!/usr/bin/env python3
"""
🎯 Свойства образца

Обнаружение и разрешение имён свойств (целевых переменных) из `properties.*`.
"""

import math
from collections.abc import Mapping
from typing import Callable, Dict, List, Optional, Sequence

from .name_parser import (
    PROPERTY_DOMAINS, NamePath, parse_name, match_key, is_numeric_scalar,
    as_scalar, section
)

# Домен имени -> раздел `properties`
PROPERTY_SECTIONS = {
    'synthesis': 'synthesis',
    'ftir': 'ftir_derived',
    'tga': 'tga_derived',
    'dsc': 'dsc_derived',
    'solubility': 'solubility_derived',
    'other': 'other',
}


def _flat_resolver(section_name: str) -> Callable[[Mapping, NamePath], float]:
    def resolve(sample: Mapping, path: NamePath) -> float:
        values = section(sample, 'properties', section_name)
        if values is None:
            return math.nan
        return as_scalar(values.get(path.rest))

    return resolve


def _resolve_solubility(sample: Mapping, path: NamePath) -> float:
    derived = section(sample, 'properties', 'solubility_derived')
    if derived is None:
        return math.nan

    # solubility_<поле>
    if path.rest in derived and is_numeric_scalar(derived[path.rest]):
        return float(derived[path.rest])

    # solubility_solvent_<растворитель>_<поле>
    tokens = path.tokens
    if tokens[0] == 'solvent' and len(tokens) > 2:
        tokens = tokens[1:]

    # solubility_<группа>_<поле>, включая combined
    groups = {key: value for key, value in derived.items() if isinstance(value, Mapping)}
    group, rest = match_key(groups, tokens)
    if group is None or not rest:
        return math.nan
    return as_scalar(groups[group].get('_'.join(rest)))


PROPERTY_RESOLVERS: Dict[str, Callable[[Mapping, NamePath], float]] = {
    domain: _flat_resolver(section_name)
    for domain, section_name in PROPERTY_SECTIONS.items()
    if domain != 'solubility'
}
PROPERTY_RESOLVERS['solubility'] = _resolve_solubility


def resolve_property(sample: Mapping, name: str) -> float:
    """
    Значение свойства `name` для образца

    Args:
        sample: Образец
        name: Имя свойства

    Returns:
        float; NaN если свойство не найдено
    """
    if not isinstance(sample, Mapping):
        return math.nan
    path = parse_name(name, PROPERTY_DOMAINS)
    if path is None:
        return math.nan
    return PROPERTY_RESOLVERS[path.domain](sample, path)


def discover_properties(sample: Mapping, domains: Optional[Sequence[str]] = None) -> List[str]:
    """Список свойств, доступных в образце, в порядке обнаружения"""
    wanted = set(domains) if domains is not None else set(PROPERTY_DOMAINS)
    properties = section(sample, 'properties')
    if properties is None:
        return []

    names: List[str] = []
    for domain, section_name in PROPERTY_SECTIONS.items():
        values = section(properties, section_name)
        if domain not in wanted or values is None:
            continue
        for key, value in values.items():
            if is_numeric_scalar(value):
                names.append(f"{domain}_{key}")
            elif domain == 'solubility' and isinstance(value, Mapping):
                names += [f"solubility_{key}_{subkey}"
                          for subkey, subvalue in value.items() if is_numeric_scalar(subvalue)]
    return names
