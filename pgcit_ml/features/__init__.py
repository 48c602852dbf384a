"""
Features module: извлечение признаков и свойств из образцов
"""

from .feature_manager import FeatureManager
from .feature_resolver import discover_features, resolve_feature
from .property_resolver import discover_properties, resolve_property

__all__ = [
    'FeatureManager',
    'discover_features',
    'resolve_feature',
    'discover_properties',
    'resolve_property'
]
