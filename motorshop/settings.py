"""
Django settings for the motorshop project.

Values come from the environment; a local .env file is loaded first.
"""

import os
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / '.env')


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


DEBUG = _env_bool('DJANGO_DEBUG', False)
SECRET_KEY = os.getenv('DJANGO_SECRET_KEY')
if not SECRET_KEY:
    if not DEBUG:
        raise ImproperlyConfigured('DJANGO_SECRET_KEY must be set when DJANGO_DEBUG is off')
    SECRET_KEY = 'motorshop-dev-secret-key'
ALLOWED_HOSTS = [h.strip() for h in os.getenv('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'workshop',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'workshop.middleware.WorkshopErrorMiddleware',
]

ROOT_URLCONF = 'motorshop.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'motorshop.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': os.getenv('DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.getenv('DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.getenv('DB_USER', ''),
        'PASSWORD': os.getenv('DB_PASSWORD', ''),
        'HOST': os.getenv('DB_HOST', ''),
        'PORT': os.getenv('DB_PORT', ''),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('DJANGO_TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
LOGIN_URL = '/admin/login/'

# Email (invoice delivery)
EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend')
EMAIL_HOST = os.getenv('EMAIL_HOST', 'localhost')
EMAIL_PORT = int(os.getenv('EMAIL_PORT', '25'))
EMAIL_HOST_USER = os.getenv('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_TLS = _env_bool('EMAIL_USE_TLS', False)
DEFAULT_FROM_EMAIL = os.getenv('DEFAULT_FROM_EMAIL', 'billing@motorshop.local')

# Workshop
WORKSHOP_INVOICE_PDF_DIR = os.getenv('WORKSHOP_INVOICE_PDF_DIR', str(BASE_DIR / 'invoices'))
WORKSHOP_PDF_TOKEN_TTL_DAYS = int(os.getenv('WORKSHOP_PDF_TOKEN_TTL_DAYS', '7'))
WORKSHOP_MAX_IMAGE_MB = int(os.getenv('WORKSHOP_MAX_IMAGE_MB', '50'))
WORKSHOP_DEFAULT_TAX_RATE = os.getenv('WORKSHOP_DEFAULT_TAX_RATE', '18')
WORKSHOP_DEFAULT_WARRANTY_MONTHS = int(os.getenv('WORKSHOP_DEFAULT_WARRANTY_MONTHS', '12'))
WORKSHOP_SUGGESTED_PRODUCTS_LIMIT = int(os.getenv('WORKSHOP_SUGGESTED_PRODUCTS_LIMIT', '20'))
WORKSHOP_APP_URL = os.getenv('WORKSHOP_APP_URL', 'http://localhost:8000')
WORKSHOP_WHATSAPP_API_URL = os.getenv('WORKSHOP_WHATSAPP_API_URL', '')
WORKSHOP_WHATSAPP_API_TOKEN = os.getenv('WORKSHOP_WHATSAPP_API_TOKEN', '')
WORKSHOP_WHATSAPP_TIMEOUT = int(os.getenv('WORKSHOP_WHATSAPP_TIMEOUT', '15'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'workshop': {
            'handlers': ['console'],
            'level': os.getenv('WORKSHOP_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
