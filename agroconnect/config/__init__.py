"""Configuration module for the AgroConnect API."""

from .settings import (
    APP_CONFIG,
    AppSettings,
    DatabaseConfig,
    AuthConfig,
    PaginationConfig,
    CacheConfig,
    get_settings,
)

__all__ = [
    'APP_CONFIG',
    'AppSettings',
    'DatabaseConfig',
    'AuthConfig',
    'PaginationConfig',
    'CacheConfig',
    'get_settings',
]
