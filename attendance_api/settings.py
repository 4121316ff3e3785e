"""
Django settings for the attendance_api project.

Scope:
- users, roles and token authentication
- academic structure (programs, sessions, branches, subjects, semesters)
- classes with per-date teacher overrides
- attendance marking, reporting and exports
"""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {'1', 'true', 'yes', 'on'}


def _env_csv(name, default_csv=''):
    value = os.getenv(name, default_csv)
    return [item.strip().rstrip('/') for item in value.split(',') if item.strip()]


APP_ENV = os.getenv('APP_ENV', os.getenv('NODE_ENV', 'development')).strip().lower()
IS_PRODUCTION = APP_ENV == 'production'
TESTING = sys.argv[1:2] == ['test'] or 'pytest' in sys.modules

DEBUG = _env_bool('DJANGO_DEBUG', not IS_PRODUCTION)
SECRET_KEY = (
    os.getenv('DJANGO_SECRET_KEY')
    or os.getenv('JWT_SECRET')
    or ('' if IS_PRODUCTION else 'change-this-secret-key-in-production-5d1c0b7e2a9f4c31')
)
ALLOWED_HOSTS = _env_csv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver')
PORT = int(os.getenv('PORT', '5000'))


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'corsheaders',
    'apps.core.api.apps.ApiConfig',
    'apps.core.users.apps.UsersConfig',
    'apps.core.academics.apps.AcademicsConfig',
    'apps.core.classes.apps.ClassesConfig',
    'apps.core.attendance.apps.AttendanceConfig',
]


MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'apps.core.users.middleware.TokenAuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'apps.core.api.middleware.JsonErrorMiddleware',
]


ROOT_URLCONF = 'attendance_api.urls'
APPEND_SLASH = False

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

WSGI_APPLICATION = 'attendance_api.wsgi.application'
ASGI_APPLICATION = 'attendance_api.asgi.application'


DB_ENGINE = os.getenv('DB_ENGINE', 'sqlite').strip().lower()
DB_NAME = os.getenv('DB_NAME', '')
DB_NAME_REQUIRED = not DEBUG and not TESTING

if DB_ENGINE in {'postgres', 'postgresql'}:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': DB_NAME,
            'USER': os.getenv('DB_USER', 'postgres'),
            'PASSWORD': os.getenv('DB_PASSWORD', ''),
            'HOST': os.getenv('DB_HOST', 'localhost'),
            'PORT': os.getenv('DB_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': DB_NAME or BASE_DIR / 'db.sqlite3',
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
        'OPTIONS': {'min_length': 6},
    },
]


LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'UTC')
USE_I18N = True
USE_TZ = True


STATIC_URL = 'static/'
AUTH_USER_MODEL = 'users.User'


SESSION_COOKIE_SECURE = IS_PRODUCTION
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')


# Token authentication
JWT_SECRET = (
    os.getenv('JWT_SECRET')
    or os.getenv('DJANGO_SECRET_KEY')
    or ('test-signing-key-used-only-by-the-test-suite-7f3a' if TESTING else '')
)
JWT_ALGORITHM = 'HS256'
JWT_EXPIRY_MINUTES = int(os.getenv('JWT_EXPIRY_MINUTES', '60'))


# CORS
_DEFAULT_DEV_ORIGINS = ['http://localhost:5173', 'http://127.0.0.1:5173']
_CORS_ORIGINS = _env_csv('CORS_ORIGINS') or ([] if IS_PRODUCTION else _DEFAULT_DEV_ORIGINS)
CORS_ALLOW_ALL_ORIGINS = '*' in _CORS_ORIGINS
CORS_ALLOWED_ORIGINS = [origin for origin in _CORS_ORIGINS if origin != '*']


# Email (low attendance notifications); disabled when SMTP credentials are absent
SMTP_HOST = os.getenv('SMTP_HOST', '')
SMTP_USER = os.getenv('SMTP_USER', '')
SMTP_PASS = os.getenv('SMTP_PASS', '')
LOW_ATTENDANCE_EMAIL_ENABLED = bool(SMTP_HOST and SMTP_USER and SMTP_PASS)
LOW_ATTENDANCE_EMAIL_ASYNC = _env_bool('LOW_ATTENDANCE_EMAIL_ASYNC', True)

EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
EMAIL_HOST = SMTP_HOST
EMAIL_PORT = int(os.getenv('SMTP_PORT', '587'))
EMAIL_HOST_USER = SMTP_USER
EMAIL_HOST_PASSWORD = SMTP_PASS
EMAIL_USE_SSL = _env_bool('SMTP_SECURE', False)
EMAIL_USE_TLS = not EMAIL_USE_SSL and EMAIL_PORT == 587
DEFAULT_FROM_EMAIL = os.getenv('SMTP_FROM') or SMTP_USER or 'webmaster@localhost'


# Attendance policy
ATTENDANCE_EDIT_LOCK_DAYS = int(os.getenv('ATTENDANCE_EDIT_LOCK_DAYS', '3'))
LOW_ATTENDANCE_THRESHOLD = int(os.getenv('LOW_ATTENDANCE_THRESHOLD', '75'))
LOW_ATTENDANCE_EMAIL_THRESHOLD = int(os.getenv('LOW_ATTENDANCE_EMAIL_THRESHOLD', '60'))
ATTENDANCE_PDF_ROWS_PER_PAGE = int(os.getenv('ATTENDANCE_PDF_ROWS_PER_PAGE', '40'))


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': os.getenv('LOG_LEVEL', 'INFO'),
    },
    'loggers': {
        'django.request': {
            'handlers': ['console'],
            'level': 'ERROR',
            'propagate': False,
        },
    },
}


TEST_RUNNER = 'apps.core.test_runner.InstalledAppsOnlyDiscoverRunner'
