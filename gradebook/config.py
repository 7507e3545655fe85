"""
Configuration settings for the gradebook app.

These values can be overridden in Django settings by prefixing with GRADEBOOK_.
For example, to change UPDATE_BATCH_SIZE:
    GRADEBOOK_UPDATE_BATCH_SIZE = 250

All configuration values are lazily loaded to avoid Django setup issues.
"""
from decimal import Decimal


def _get_setting(name, default):
    """Get a gradebook setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'GRADEBOOK_{name}', default)


_DEFAULTS = {
    # Grade levels split into academic tracks
    'TRACKED_GRADES': (11, 12),

    # Rows per update transaction during reconciliation
    'UPDATE_BATCH_SIZE': 100,

    # Report band "E" cutoff; averages at or above it pass
    'PASS_AVERAGE': Decimal('25'),

    # Spreadsheet import
    'MAX_FILE_SIZE': 5 * 1024 * 1024,  # 5 MB
    'IMPORT_COLUMNS_VERSION': 1,
}


class _ConfigProxy:
    """
    Lazy configuration proxy that loads settings only when accessed.
    This avoids Django setup issues during module import.
    """

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


_config = _ConfigProxy()


def __getattr__(name):
    """Enable module-level attribute access via the config proxy."""
    return getattr(_config, name)
