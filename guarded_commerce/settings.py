"""
Django settings for guarded_commerce.

Everything deployment specific comes from environment variables. Card key
material and guard policy are read once at startup; changing them requires
a restart.
"""

import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_list(name: str, default: str = '') -> list:
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-dev-only-change-me')
DEBUG = env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = env_list('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'django_filters',
    'guard',
    'cards',
    'products',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    # after authentication so session users are identified
    'guard.middleware.RequestGuardMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'guarded_commerce.urls'
WSGI_APPLICATION = 'guarded_commerce.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# ============================================================================
# DATABASE
# ============================================================================

# Guard store calls are bounded by the driver timeout; there is no retry.
GUARD_STORE_TIMEOUT = float(os.environ.get('GUARD_STORE_TIMEOUT', '5'))

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DATABASE_PATH', str(BASE_DIR / 'db.sqlite3')),
        'OPTIONS': {
            'timeout': GUARD_STORE_TIMEOUT,
            # writers queue on BEGIN instead of failing on lock upgrade
            'transaction_mode': 'IMMEDIATE',
        },
        'TEST': {
            'NAME': str(BASE_DIR / 'test_guarded_commerce.sqlite3'),
        },
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ============================================================================
# CACHE (request burst counters, rate limiting)
# ============================================================================

REDIS_URL = os.environ.get('REDIS_URL')

if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
            'OPTIONS': {'socket_timeout': GUARD_STORE_TIMEOUT},
        }
    }
else:
    # shared by every worker; create with `manage.py createcachetable`
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.db.DatabaseCache',
            'LOCATION': 'guarded_commerce_cache',
        }
    }
    SILENCED_SYSTEM_CHECKS = ['django_ratelimit.E003', 'django_ratelimit.W001']

# ============================================================================
# AUTH / REST FRAMEWORK
# ============================================================================

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
        'rest_framework.filters.SearchFilter',
        'rest_framework.filters.OrderingFilter',
    ],
    'EXCEPTION_HANDLER': 'core.exceptions.api_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=15),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=1),
    'AUTH_HEADER_TYPES': ('Bearer',),
}

RATELIMIT_ENABLE = env_bool('RATELIMIT_ENABLE', True)

# ============================================================================
# CARD FIELD ENCODING
# ============================================================================

# Comma-separated key material; the first entry encodes, all entries decode.
# No default: without a key every card operation fails.
CARD_FIELD_KEYS = env_list('CARD_FIELD_KEYS')

CARD_LIMIT_PER_USER = 4

# ============================================================================
# REQUEST GUARD
# ============================================================================

GUARD = {
    'ENABLED': env_bool('GUARD_ENABLED', True),
    'THRESHOLD': int(os.environ.get('GUARD_THRESHOLD', '6')),
    'RATE_LIMIT': int(os.environ.get('GUARD_RATE_LIMIT', '120')),
    'RATE_WINDOW': int(os.environ.get('GUARD_RATE_WINDOW', '60')),
    'MAX_BODY_BYTES': int(os.environ.get('GUARD_MAX_BODY_BYTES', str(1024 * 1024))),
    # 'closed' denies requests while the store is unreachable, 'open' allows them
    'FAIL_MODE': os.environ.get('GUARD_FAIL_MODE', 'closed'),
    'TRUST_FORWARDED_FOR': env_bool('GUARD_TRUST_FORWARDED_FOR', False),
}

# ============================================================================
# INTERNATIONALIZATION / STATIC
# ============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# ============================================================================
# SECURITY HEADERS
# ============================================================================

SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'DENY'
SECURE_REFERRER_POLICY = 'strict-origin-when-cross-origin'
SECURE_HSTS_SECONDS = int(os.environ.get('SECURE_HSTS_SECONDS', '0'))
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG

# ============================================================================
# LOGGING
# ============================================================================

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'guard': {'level': LOG_LEVEL},
        'cards': {'level': LOG_LEVEL},
        'products': {'level': LOG_LEVEL},
        'core': {'level': LOG_LEVEL},
    },
}
