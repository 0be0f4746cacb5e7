"""
TrustMap Common Module

Shared infrastructure for the parser and analysis packages.
"""

from .config import TrustMapConfig, load_config, save_config, DEFAULT_CONFIG

__all__ = [
    "TrustMapConfig",
    "load_config",
    "save_config",
    "DEFAULT_CONFIG",
]
