from pathlib import Path

from environs import Env

env = Env()
env.read_env(recurse=False)

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = env.str('SECRET_KEY', 'django-insecure-3b!x0v7m$q2k9yq#h1r@w^e8d6n4p_u5s+t0c&f-j2a7l=zg')

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', [])

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'integrator',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'

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

WSGI_APPLICATION = 'core.wsgi.application'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {'format': '%(asctime)s %(levelname)s %(name)s: %(message)s'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'verbose'},
    },
    'loggers': {
        'integrator': {
            'handlers': ['console'],
            'level': env.str('LOG_LEVEL', 'INFO'),
        },
    },
}

# Celery
CELERY_BROKER_URL = env.str('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = CELERY_BROKER_URL
CELERY_BEAT_SCHEDULE = {
    'sync-catalog-every-30-min': {
        'task': 'integrator.tasks.sync_catalog',
        'schedule': env.int('SYNC_INTERVAL_SECONDS', 1800),
    },
}

# Catalog source
CATALOG_API_BASE_URL = env.str('CATALOG_API_BASE_URL', 'https://api.fake-catalog.test')
CATALOG_API_TIMEOUT = env.int('CATALOG_API_TIMEOUT', 30)

# Storefront
SHOPIFY_SHOP_NAME = env.str('SHOPIFY_SHOP_NAME', 'test-shop')
SHOPIFY_ACCESS_TOKEN = env.str('SHOPIFY_ACCESS_TOKEN', 'shpat-test-token')
SHOPIFY_API_VERSION = env.str('SHOPIFY_API_VERSION', '2024-01')
SHOPIFY_API_TIMEOUT = env.int('SHOPIFY_API_TIMEOUT', 30)
SHOPIFY_WEBHOOK_SECRET = env.str('SHOPIFY_WEBHOOK_SECRET', 'test-webhook-secret')

# Fulfillment vendor
VENDOR_API_BASE_URL = env.str('VENDOR_API_BASE_URL', 'https://api.fake-vendor.test')
VENDOR_IDENTIFIER = env.str('VENDOR_IDENTIFIER', 'dealer@example.com')
VENDOR_PASSWORD = env.str('VENDOR_PASSWORD', 'dealer-password')
VENDOR_DEALER_ID = env.str('VENDOR_DEALER_ID', '')
VENDOR_API_TIMEOUT = env.int('VENDOR_API_TIMEOUT', 30)

# Sync tuning
SYNC_BATCH_SIZE = env.int('SYNC_BATCH_SIZE', 5)
SYNC_BATCH_PAUSE = env.float('SYNC_BATCH_PAUSE', 2.0)

# Sync providers — swap via env or override in dev.py/prod.py
SYNC_SOURCE_CLASS = env.str('SYNC_SOURCE_CLASS', 'integrator.sources.catalog_source.CatalogApiSource')
SYNC_STOREFRONT_CLASS = env.str(
    'SYNC_STOREFRONT_CLASS', 'integrator.clients.storefront_client.ShopifyStorefront',
)
VENDOR_CLIENT_CLASS = env.str('VENDOR_CLIENT_CLASS', 'integrator.clients.vendor_client.VendorClient')

# Customer mail
EMAIL_HOST = env.str('SMTP_HOST', 'localhost')
EMAIL_PORT = env.int('SMTP_PORT', 465)
EMAIL_HOST_USER = env.str('SMTP_USER', '')
EMAIL_HOST_PASSWORD = env.str('SMTP_PASS', '')
EMAIL_USE_SSL = env.bool('SMTP_USE_SSL', True)
DEFAULT_FROM_EMAIL = env.str('EMAIL_FROM', 'eSIM Store <no-reply@example.com>')
ESIM_EMAIL_SUBJECT = env.str('ESIM_EMAIL_SUBJECT', 'Your eSIM package is ready')
ESIM_SUPPORT_EMAIL = env.str('ESIM_SUPPORT_EMAIL', 'support@example.com')
