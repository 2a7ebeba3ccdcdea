# src/pystars/services/__init__.py
"""Service layer for pystars."""

from .configuration_service import ConfigurationService

__all__ = ['ConfigurationService']
