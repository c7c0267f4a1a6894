# teamwork/settings.py
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('TEAMWORK_SECRET_KEY', 'django-insecure-teamwork-dev-key')
DEBUG = env_bool('TEAMWORK_DEBUG', default=False)
ALLOWED_HOSTS = os.environ.get('TEAMWORK_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django_filters',

    'apps.core',
    'apps.projects',
    'apps.tasks',
    'apps.notifications',
    'apps.reports',
]

MIDDLEWARE = []

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('TEAMWORK_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TEAMWORK_TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True

# Okno "termin się zbliża" (godziny)
TEAMWORK_DUE_SOON_HOURS = int(os.environ.get('TEAMWORK_DUE_SOON_HOURS', '12'))

# Ważność kodu zaproszenia (dni)
TEAMWORK_INVITE_TTL_DAYS = int(os.environ.get('TEAMWORK_INVITE_TTL_DAYS', '30'))

LOG_LEVEL = os.environ.get('TEAMWORK_LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'django': {
            'handlers': ['console'],
            'level': 'WARNING',
        },
    },
}
