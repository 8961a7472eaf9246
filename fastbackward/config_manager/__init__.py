"""
Configuration Manager Module
============================

Responsibility:
- Centralized loading and validation of JSON configuration files.
- Enforcement of schema constraints and logical rules on the selection settings.
- Resolution of the criterion penalty (AIC or BIC) for a given sample size.
"""

from .config_manager import ConfigurationManager, resolve_penalty

__all__ = ['ConfigurationManager', 'resolve_penalty']
