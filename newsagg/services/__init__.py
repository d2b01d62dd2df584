"""
NewsAgg Services
================

Shared service layer used by the CLI and the scheduler.
"""

from .source_service import SourceService
from .maintenance_service import MaintenanceService
from .seed_data import seed_defaults, DEFAULT_CATEGORIES, DEFAULT_SOURCES

__all__ = [
    'SourceService',
    'MaintenanceService',
    'seed_defaults',
    'DEFAULT_CATEGORIES',
    'DEFAULT_SOURCES',
]
