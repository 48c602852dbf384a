"""
Systems module: готовые сценарии поверх BaseSystem
"""

from .property_system import PropertySystem

__all__ = ['PropertySystem']
