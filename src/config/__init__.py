from .config import BaseConfig, DevelopmentConfig, ProductionConfig, TestConfig
from .environment import AppEnvironment

__all__ = [
    "AppEnvironment",
    "BaseConfig",
    "DevelopmentConfig",
    "ProductionConfig",
    "TestConfig",
]
