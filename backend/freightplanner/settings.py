from pathlib import Path
import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

def _env(name: str, default: str = '') -> str:
    val = os.environ.get(name, default)
    if isinstance(val, str):
        return val.strip().strip('"').strip("'")
    return val


def _env_bool(name: str, default: bool = False) -> bool:
    raw = str(_env(name, str(default))).lower()
    return raw in ('1', 'true', 'yes', 'on')


SECRET_KEY = _env('SECRET_KEY', 'django-insecure-dev-key-change-in-production-freight-planner')

DEBUG = _env_bool('DEBUG', True)

ALLOWED_HOSTS = [h.strip() for h in _env('ALLOWED_HOSTS', '*').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.staticfiles',
    'rest_framework',
    'corsheaders',
    'logistics',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'freightplanner.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
            ],
        },
    },
]

WSGI_APPLICATION = 'freightplanner.wsgi.application'
ASGI_APPLICATION = 'freightplanner.asgi.application'

# PostgreSQL when configured, SQLite for local runs and tests.
if _env('POSTGRES_HOST') or _env('POSTGRES_DB'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': _env('POSTGRES_DB', 'freightplanner'),
            'USER': _env('POSTGRES_USER', 'freightplanner'),
            'PASSWORD': _env('POSTGRES_PASSWORD', 'freightplanner'),
            'HOST': _env('POSTGRES_HOST', 'localhost'),
            'PORT': _env('POSTGRES_PORT', '5432'),
            'CONN_MAX_AGE': int(_env('POSTGRES_CONN_MAX_AGE', '60')),
            'OPTIONS': {
                'sslmode': _env('POSTGRES_SSLMODE', 'prefer'),
            },
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

AUTH_PASSWORD_VALIDATORS = []

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# CORS - allow all origins in development
CORS_ALLOW_ALL_ORIGINS = _env_bool('CORS_ALLOW_ALL_ORIGINS', True)
CORS_ALLOW_CREDENTIALS = True

# REST Framework
REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'UNAUTHENTICATED_USER': None,
}

# Routing & geocoding
NOMINATIM_BASE_URL = _env('NOMINATIM_BASE_URL', 'https://nominatim.openstreetmap.org')
OSRM_BASE_URL = _env('OSRM_BASE_URL', 'https://router.project-osrm.org/route/v1/driving')
ROUTING_USER_AGENT = _env('ROUTING_USER_AGENT', 'FreightPlanner/1.0')

# Route summaries
OPENAI_API_KEY = _env('OPENAI_API_KEY', '')
OPENAI_MODEL = _env('OPENAI_MODEL', 'gpt-4o-mini')
OPENAI_TIMEOUT_SECONDS = float(_env('OPENAI_TIMEOUT_SECONDS', '20'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
        },
        'logistics.driver_rules': {
            'handlers': ['console'],
            'level': _env('DRIVER_RULES_LOG_LEVEL', 'INFO'),
        },
        'logistics.services': {
            'handlers': ['console'],
            'level': 'INFO',
        },
        'logistics.views': {
            'handlers': ['console'],
            'level': 'INFO',
        },
    },
}
