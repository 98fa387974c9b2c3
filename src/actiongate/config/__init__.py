"""Configuration for actiongate."""

from .settings import (
    ApprovalConfig,
    CleanupConfig,
    ExecutionConfig,
    LoggingConfig,
    Settings,
    StoreConfig,
    WebConfig,
    load_settings,
)

__all__ = [
    'ApprovalConfig',
    'CleanupConfig',
    'ExecutionConfig',
    'LoggingConfig',
    'Settings',
    'StoreConfig',
    'WebConfig',
    'load_settings',
]
