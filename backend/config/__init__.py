"""
Configuration module for the Republic services.
"""
from .settings import Settings, get_settings

__all__ = [
    'Settings',
    'get_settings',
]
