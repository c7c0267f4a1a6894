from django.apps import AppConfig

class CoreConfig(AppConfig):
    """Wspólne statusy, wyjątki domenowe i składanie zależności (bez własnych tabel)."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'  # Ważne: pełna ścieżka
    label = 'core'
    verbose_name = 'Teamwork core'
