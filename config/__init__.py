# GPSR Compliance Records - Configuration
# Environment-driven runtime settings

from .settings import Settings, settings

__all__ = ['Settings', 'settings']
