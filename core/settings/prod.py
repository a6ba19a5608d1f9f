from .base import *  # noqa: F401,F403
from .base import env

DEBUG = False

SECRET_KEY = env.str('SECRET_KEY')  # required — no default

ALLOWED_HOSTS = env.list('ALLOWED_HOSTS')

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': env.str('POSTGRES_DB', 'esim_integrator'),
        'USER': env.str('POSTGRES_USER', 'postgres'),
        'PASSWORD': env.str('POSTGRES_PASSWORD', 'postgres'),
        'HOST': env.str('POSTGRES_HOST', 'db'),
        'PORT': env.str('POSTGRES_PORT', '5432'),
    }
}

# Security
SECURE_SSL_REDIRECT = env.bool('SECURE_SSL_REDIRECT', True)
SECURE_HSTS_SECONDS = env.int('SECURE_HSTS_SECONDS', 31536000)
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

# Integration credentials are required in production
SHOPIFY_ACCESS_TOKEN = env.str('SHOPIFY_ACCESS_TOKEN')
SHOPIFY_WEBHOOK_SECRET = env.str('SHOPIFY_WEBHOOK_SECRET')
VENDOR_IDENTIFIER = env.str('VENDOR_IDENTIFIER')
VENDOR_PASSWORD = env.str('VENDOR_PASSWORD')
