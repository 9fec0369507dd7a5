"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import ApiConfig, ExportConfig

__all__ = ["ApiConfig", "ConfigLocator", "ConfigRepository", "ExportConfig"]
