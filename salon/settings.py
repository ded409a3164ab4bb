#salon/settings.py

import os
from pathlib import Path
from datetime import timedelta
import ssl
from dotenv import load_dotenv
import urllib.parse as urlparse


# Load .env file
load_dotenv()
# ==============================
# Base Directory
# ==============================
BASE_DIR = Path(__file__).resolve().parent.parent

# ==============================
# Django Security
# ==============================
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-default-key')
DEBUG = os.getenv('DEBUG', 'True').lower() in ('true', '1', 't')

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

# ==============================
# Installed Apps
# ==============================
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework_simplejwt',
    'drf_yasg',
    'accounts',
    'api.apps.ApiConfig',
    'bookings',
]

# ==============================
# REST Framework & JWT
# ==============================
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'EXCEPTION_HANDLER': 'api.exceptions.scheduling_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=60),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': True,
    'AUTH_HEADER_TYPES': ('Bearer',),
}

# ==============================
# Middleware
# ==============================
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',  # Static file compression
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'salon.urls'

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

WSGI_APPLICATION = 'salon.wsgi.application'

# ==============================
# Helper logic to clean Redis URL
# ==============================

# Get the raw URL from the environment
RAW_REDIS_URL = os.getenv("REDIS_URL")
CLEAN_REDIS_URL = RAW_REDIS_URL
SSL_OPTIONS = {}

if RAW_REDIS_URL and RAW_REDIS_URL.startswith("rediss://"):
    # This is an SSL connection, set the correct SSL constant
    SSL_OPTIONS = {"ssl_cert_reqs": ssl.CERT_NONE}

    try:
        parsed_url = urlparse.urlparse(RAW_REDIS_URL)
        query_params = urlparse.parse_qs(parsed_url.query)

        # Remove the problematic key if it exists
        query_params.pop('ssl_cert_reqs', None)

        new_query = urlparse.urlencode(query_params, doseq=True)
        CLEAN_REDIS_URL = parsed_url._replace(query=new_query).geturl()
    except ValueError as e:
        print(f"Warning: Could not parse REDIS_URL, proceeding with raw URL. Error: {e}")
        CLEAN_REDIS_URL = RAW_REDIS_URL

# ==============================
# Database
# ==============================
# PostgreSQL in deployed environments, SQLite for local runs and tests.
if os.getenv('DATABASE_HOST'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv('DATABASE_NAME', 'salon'),
            'USER': os.getenv('DATABASE_USER', 'postgres'),
            'PASSWORD': os.getenv('DATABASE_PASSWORD', ''),
            'HOST': os.getenv('DATABASE_HOST'),
            'PORT': int(os.getenv('DATABASE_PORT', 5432)),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# ==============================
# Password Validation
# ==============================
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',},
]

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[%(asctime)s] %(levelname)s %(name)s:%(lineno)s — %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        # Root logger
        "": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO")},

        # Django core
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "django.request": {"handlers": ["console"], "level": "WARNING", "propagate": False},

        # Scheduling core
        "api": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO"), "propagate": False},
        "bookings": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO"), "propagate": False},
    },
}
# ==============================
# Internationalization
# ==============================
# Bookings are stored in UTC; locations carry their own IANA timezone.
LANGUAGE_CODE = 'en-us'
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ==============================
# Static files
# ==============================
STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedStaticFilesStorage"},
}

# ==============================
# Default primary key field type
# ==============================
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# ==============================
# Custom User Model
# ==============================
AUTH_USER_MODEL = 'accounts.User'

# ==============================
# CSRF Trusted Origins
# ==============================
CSRF_TRUSTED_ORIGINS = [x.strip() for x in os.getenv('CSRF_TRUSTED_ORIGINS', '').split(',') if x]
# Add localhost for local development
CSRF_TRUSTED_ORIGINS += ['http://localhost:8000', 'http://127.0.0.1:8000']

# ==============================
# Celery Configuration
# ==============================
CELERY_BROKER_URL = CLEAN_REDIS_URL or "memory://"
CELERY_RESULT_BACKEND = CLEAN_REDIS_URL
CELERY_TASK_IGNORE_RESULT = True

# Sync Celery's timezone with Django's
CELERY_TIMEZONE = TIME_ZONE

# ==============================
# Scheduling
# ==============================
# Shared secret for the cron-triggered no-show sweep endpoint
CRON_SECRET = os.getenv("CRON_SECRET", "")

# Bookings still pending/confirmed this long after start without check-in become no-shows
NO_SHOW_GRACE_HOURS = int(os.getenv("NO_SHOW_GRACE_HOURS", 12))
NO_SHOW_PENALTY_PERCENTAGE = int(os.getenv("NO_SHOW_PENALTY_PERCENTAGE", 50))

AVAILABILITY_SLOT_MINUTES = int(os.getenv("AVAILABILITY_SLOT_MINUTES", 60))
DEFAULT_LOCATION_TIMEZONE = os.getenv("DEFAULT_LOCATION_TIMEZONE", "UTC")

# Online deposit = min(base_price * DEPOSIT_PERCENTAGE%, DEPOSIT_CAP)
DEPOSIT_PERCENTAGE = int(os.getenv("DEPOSIT_PERCENTAGE", 50))
DEPOSIT_CAP = os.getenv("DEPOSIT_CAP", "200.00")

SHORT_ID_MAX_ATTEMPTS = int(os.getenv("SHORT_ID_MAX_ATTEMPTS", 5))
