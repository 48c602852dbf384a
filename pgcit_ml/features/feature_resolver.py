#!/usr/bin/env python3
"""
🔬 Признаки из измерений образца

Обнаружение доступных признаков и вычисление значения признака по имени.
Признаки берутся из `synthesis` и `measurements.{ftir,tga,dsc_heating,dsc_cooling,solubility}`.
Разрешение никогда не бросает исключений: отсутствующее значение это NaN.
"""

import math
import re
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Sequence

from .name_parser import (
    FEATURE_DOMAINS, NamePath, parse_name, match_key, is_numeric_scalar,
    as_scalar, section, is_processed, format_wavenumber
)

TGA_STAGE_FIELDS = {
    'onset': 'onset_temperature',
    'endset': 'endset_temperature',
    'weight_loss': 'weight_loss_percent',
}
DSC_TRANSITION_FIELDS = ('onset', 'peak', 'endset')
STAGE_PATTERN = re.compile(r'^stage(\d+)$')


def _measurement(sample: Mapping, technique: str) -> Optional[Mapping]:
    """Запись измерения, только если она обработана"""
    record = section(sample, 'measurements', technique)
    return record if is_processed(record) else None


def _solvents(solubility: Optional[Mapping]) -> List[str]:
    """Растворители без служебных полей истории"""
    if solubility is None:
        return []
    return [key for key, value in solubility.items()
            if '_history' not in key and isinstance(value, Mapping)]


# ---------------------------------------------------------------------------
# Разрешение значения по домену
# ---------------------------------------------------------------------------

def _resolve_synthesis(sample: Mapping, path: NamePath) -> float:
    synthesis = section(sample, 'synthesis')
    if synthesis is None:
        return math.nan
    return as_scalar(synthesis.get(path.rest))


def _resolve_ftir(sample: Mapping, path: NamePath) -> float:
    ftir = _measurement(sample, 'ftir')
    if ftir is None or len(path.tokens) < 2:
        return math.nan

    kind, rest = path.tokens[0], path.tokens[1:]
    if kind == 'index':
        indices = section(ftir, 'spectral_indices')
        return as_scalar(indices.get('_'.join(rest))) if indices else math.nan

    if kind == 'peak':
        try:
            target = float('_'.join(rest))
        except ValueError:
            return math.nan
        return _nearest_peak_intensity(ftir.get('peaks'), target)

    return math.nan


def _nearest_peak_intensity(peaks: Any, target: float) -> float:
    """Интенсивность пика с ближайшим волновым числом"""
    if not isinstance(peaks, (list, tuple)):
        return math.nan

    best_diff = math.inf
    value = math.nan
    for peak in peaks:
        if not isinstance(peak, Mapping) or not is_numeric_scalar(peak.get('wavenumber')):
            continue
        diff = abs(float(peak['wavenumber']) - target)
        if diff < best_diff:
            best_diff = diff
            value = as_scalar(peak.get('intensity'))
    return value


def _resolve_tga(sample: Mapping, path: NamePath) -> float:
    tga = _measurement(sample, 'tga')
    if tga is None or len(path.tokens) < 2:
        return math.nan

    head, rest = path.tokens[0], '_'.join(path.tokens[1:])
    stage_match = STAGE_PATTERN.match(head)
    if stage_match:
        stages = tga.get('decomposition_stages')
        index = int(stage_match.group(1))
        # Номера стадий начинаются с 1; выход за границы даёт NaN
        if not isinstance(stages, (list, tuple)) or not 1 <= index <= len(stages):
            return math.nan
        stage = stages[index - 1]
        field = TGA_STAGE_FIELDS.get(rest)
        if field is None or not isinstance(stage, Mapping):
            return math.nan
        return as_scalar(stage.get(field))

    if head == 'temp':
        temps = section(tga, 'characteristic_temperatures')
        return as_scalar(temps.get(rest)) if temps else math.nan

    return math.nan


def _resolve_dsc(technique: str) -> Callable[[Mapping, NamePath], float]:
    def resolve(sample: Mapping, path: NamePath) -> float:
        dsc = _measurement(sample, technique)
        if dsc is None or len(path.tokens) < 2:
            return math.nan

        if path.tokens[0] == 'enthalpy':
            enthalpies = section(dsc, 'enthalpies')
            key = '_'.join(path.tokens[1:])
            if enthalpies is not None and key in enthalpies:
                return as_scalar(enthalpies[key])

        transitions = section(dsc, 'transitions')
        name, rest = match_key(transitions, path.tokens)
        if name is None or len(rest) != 1 or rest[0] not in DSC_TRANSITION_FIELDS:
            return math.nan
        transition = transitions[name]
        if not isinstance(transition, Mapping):
            return math.nan
        return as_scalar(transition.get(rest[0]))

    return resolve


def _resolve_solubility(sample: Mapping, path: NamePath) -> float:
    solubility = section(sample, 'measurements', 'solubility')
    if solubility is None:
        return math.nan

    history = [key for key in solubility if '_history' in key]
    solvent, rest = match_key(solubility, path.tokens, exclude=history)
    if solvent is None or not rest or not is_processed(section(solubility, solvent)):
        return math.nan
    record = solubility[solvent]

    if rest[:2] == ('vant', 'hoff') and len(rest) > 2:
        params = section(record, 'vant_hoff_params')
        key = '_'.join(rest[2:])
        if params is not None and key in params:
            return as_scalar(params[key])
    elif rest[0] == 'thermo' and len(rest) > 1:
        params = section(record, 'thermodynamic_params')
        key = '_'.join(rest[1:])
        if params is not None and key in params:
            return as_scalar(params[key])

    additional = section(record, 'additional_params')
    return as_scalar(additional.get('_'.join(rest))) if additional else math.nan


FEATURE_RESOLVERS: Dict[str, Callable[[Mapping, NamePath], float]] = {
    'synthesis': _resolve_synthesis,
    'ftir': _resolve_ftir,
    'tga': _resolve_tga,
    'dsc_heating': _resolve_dsc('dsc_heating'),
    'dsc_cooling': _resolve_dsc('dsc_cooling'),
    'solubility': _resolve_solubility,
}


def resolve_feature(sample: Mapping, name: str) -> float:
    """
    Значение признака `name` для образца

    Args:
        sample: Образец (вложенный словарь)
        name: Имя признака

    Returns:
        float; NaN если признак не найден
    """
    if not isinstance(sample, Mapping):
        return math.nan
    path = parse_name(name, FEATURE_DOMAINS)
    if path is None:
        return math.nan
    return FEATURE_RESOLVERS[path.domain](sample, path)


# ---------------------------------------------------------------------------
# Обнаружение признаков
# ---------------------------------------------------------------------------

def _numeric_keys(mapping: Optional[Mapping]) -> List[str]:
    if mapping is None:
        return []
    return [key for key, value in mapping.items() if is_numeric_scalar(value)]


def discover_features(sample: Mapping, domains: Optional[Sequence[str]] = None) -> List[str]:
    """
    Список признаков, доступных в образце, в порядке обнаружения

    Args:
        sample: Образец
        domains: Ограничение по доменам (None - все)

    Returns:
        Список имён признаков
    """
    wanted = set(domains) if domains is not None else set(FEATURE_DOMAINS)
    names: List[str] = []

    if 'synthesis' in wanted:
        names += [f"synthesis_{key}" for key in _numeric_keys(section(sample, 'synthesis'))]

    ftir = _measurement(sample, 'ftir')
    if 'ftir' in wanted and ftir is not None:
        names += [f"ftir_index_{key}" for key in _numeric_keys(section(ftir, 'spectral_indices'))]
        peaks = ftir.get('peaks')
        if isinstance(peaks, (list, tuple)):
            for peak in peaks:
                if isinstance(peak, Mapping) and is_numeric_scalar(peak.get('wavenumber')):
                    name = f"ftir_peak_{format_wavenumber(peak['wavenumber'])}"
                    if name not in names:
                        names.append(name)

    tga = _measurement(sample, 'tga')
    if 'tga' in wanted and tga is not None:
        stages = tga.get('decomposition_stages')
        if isinstance(stages, (list, tuple)):
            for i in range(1, len(stages) + 1):
                names += [f"tga_stage{i}_{suffix}" for suffix in TGA_STAGE_FIELDS]
        names += [f"tga_temp_{key}" for key in _numeric_keys(section(tga, 'characteristic_temperatures'))]

    for technique in ('dsc_heating', 'dsc_cooling'):
        dsc = _measurement(sample, technique)
        if technique not in wanted or dsc is None:
            continue
        transitions = section(dsc, 'transitions')
        if transitions is not None:
            for transition in transitions:
                names += [f"{technique}_{transition}_{suffix}" for suffix in DSC_TRANSITION_FIELDS]
        names += [f"{technique}_enthalpy_{key}" for key in _numeric_keys(section(dsc, 'enthalpies'))]

    solubility = section(sample, 'measurements', 'solubility')
    if 'solubility' in wanted:
        for solvent in _solvents(solubility):
            record = solubility[solvent]
            if not is_processed(record):
                continue
            names += [f"solubility_{solvent}_vant_hoff_{key}"
                      for key in _numeric_keys(section(record, 'vant_hoff_params'))]
            names += [f"solubility_{solvent}_thermo_{key}"
                      for key in _numeric_keys(section(record, 'thermodynamic_params'))]
            names += [f"solubility_{solvent}_{key}"
                      for key in _numeric_keys(section(record, 'additional_params'))]

    return names
