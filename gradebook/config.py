"""
Configuration settings for the gradebook app.

These values can be overridden in Django settings by prefixing with GRADEBOOK_.
For example, to change BULK_UPDATE_BATCH_SIZE:
    GRADEBOOK_BULK_UPDATE_BATCH_SIZE = 1000

All configuration values are lazily loaded to avoid Django setup issues.
The per-school grading regulation (decision points and caps) is not set
here; it lives in core.SchoolSettings.
"""


def _get_setting(name, default):
    """Get a gradebook setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'GRADEBOOK_{name}', default)


_DEFAULTS = {
    # Grading
    'PASS_THRESHOLD': 50,

    # Bulk operation settings
    'BULK_UPDATE_BATCH_SIZE': 500,

    # Export settings
    'EXCEL_HEADER_COLOR': '0E7490',
    'DECISION_LOG_LIMIT': 500,

    # Celery task settings
    'TASK_MAX_RETRIES': 3,
    'TASK_RETRY_DELAY': 60,  # seconds
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


# Module-level proxy object for attribute access
_config = _ConfigProxy()


def __getattr__(name):
    """Enable module-level attribute access via the config proxy."""
    return getattr(_config, name)
