from pathlib import Path
import os
from django.core.exceptions import ImproperlyConfigured


def env_bool(name, default):
    return os.environ.get(name, str(default)).strip().lower() in ('1', 'true', 'yes', 'on')


def env_list(name, default=''):
    """Comma-separated environment value as a list, blanks dropped."""
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


def parse_admins(entries):
    """``Name <addr>`` or bare ``addr`` entries as Django ``ADMINS`` pairs."""
    admins = []
    for entry in entries:
        name, sep, rest = entry.partition('<')
        if sep and '>' in rest:
            addr = rest.split('>', 1)[0].strip()
            admins.append((name.strip() or addr, addr))
        else:
            admins.append((entry, entry))
    return admins


# Optional error monitoring via Sentry
SENTRY_DSN = os.environ.get('SENTRY_DSN')
if SENTRY_DSN:
    try:
        import sentry_sdk
        from sentry_sdk.integrations.django import DjangoIntegration
    except ImportError as exc:
        raise ImproperlyConfigured('SENTRY_DSN is set but sentry-sdk is not installed (pip install dailytrack[sentry])') from exc
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration()],
        traces_sample_rate=float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', '0.0')),
        send_default_pii=False,
    )

BASE_DIR = Path(__file__).resolve().parent.parent

DEBUG = env_bool('DJANGO_DEBUG', True)

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', '')
if not SECRET_KEY:
    if not DEBUG:
        raise ImproperlyConfigured('DJANGO_SECRET_KEY is required when DEBUG=False')
    SECRET_KEY = 'dailytrack-dev-only-key'

ALLOWED_HOSTS = env_list('DJANGO_ALLOWED_HOSTS', '*' if DEBUG else '')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'attendance',
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

ROOT_URLCONF = 'dailytrack.urls'

# Only the admin renders HTML; the attendance app answers JSON and text
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
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

WSGI_APPLICATION = 'dailytrack.wsgi.application'

# SQLite unless DJANGO_DB_ENGINE names another backend
DATABASES = {
    'default': {
        'ENGINE': os.environ.get('DJANGO_DB_ENGINE', 'django.db.backends.sqlite3'),
        'NAME': os.environ.get('DJANGO_DB_NAME', str(BASE_DIR / 'db.sqlite3')),
        'USER': os.environ.get('DJANGO_DB_USER', ''),
        'PASSWORD': os.environ.get('DJANGO_DB_PASSWORD', ''),
        'HOST': os.environ.get('DJANGO_DB_HOST', ''),
        'PORT': os.environ.get('DJANGO_DB_PORT', ''),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('DAILYTRACK_TIME_ZONE', 'Asia/Kolkata')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LOGIN_URL = '/admin/login/'

# Attendance engine
# Upcoming classes assumed when flagging students at risk of dropping below 75%
DAILYTRACK_RISK_LOOKAHEAD = int(os.environ.get('DAILYTRACK_RISK_LOOKAHEAD', '5'))
DAILYTRACK_REPORT_FOOTER = os.environ.get('DAILYTRACK_REPORT_FOOTER', 'Generated by Daily Track App')
# Ordered share channels; the first available one is the primary channel
DAILYTRACK_SHARE_CHANNELS = env_list('DAILYTRACK_SHARE_CHANNELS', 'whatsapp,email')
DAILYTRACK_WHATSAPP_ENABLED = env_bool('DAILYTRACK_WHATSAPP_ENABLED', True)
DAILYTRACK_DEFAULT_COUNTRY_CODE = os.environ.get('DAILYTRACK_DEFAULT_COUNTRY_CODE', '91')

if not DEBUG:
    SECURE_SSL_REDIRECT = env_bool('DJANGO_SECURE_SSL_REDIRECT', True)
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    CSRF_TRUSTED_ORIGINS = env_list('DJANGO_CSRF_TRUSTED_ORIGINS')

# Error e-mails to DJANGO_ADMINS when an SMTP host is configured
ADMINS = parse_admins(env_list('DJANGO_ADMINS'))
EMAIL_HOST = os.environ.get('DJANGO_EMAIL_HOST', '')
EMAIL_PORT = int(os.environ.get('DJANGO_EMAIL_PORT', '587'))
EMAIL_HOST_USER = os.environ.get('DJANGO_EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.environ.get('DJANGO_EMAIL_HOST_PASSWORD', '')
EMAIL_USE_TLS = env_bool('DJANGO_EMAIL_USE_TLS', True)
SERVER_EMAIL = os.environ.get('DJANGO_SERVER_EMAIL', 'dailytrack@localhost')

# Console while developing; rotating file plus console otherwise
LOG_DIR = BASE_DIR / 'logs'
if not DEBUG:
    os.makedirs(LOG_DIR, exist_ok=True)

_log_handlers = ['console'] if DEBUG else ['file', 'console']
if EMAIL_HOST and ADMINS:
    _log_handlers.append('mail_admins')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(LOG_DIR / 'app.log'),
            'maxBytes': 5 * 1024 * 1024,
            'backupCount': 3,
            'formatter': 'standard',
            'delay': True,
        },
        'mail_admins': {
            'class': 'django.utils.log.AdminEmailHandler',
            'level': 'ERROR',
        },
    },
    'loggers': {
        'django': {
            'handlers': list(_log_handlers),
            'level': 'INFO',
            'propagate': False,
        },
        '': {
            'handlers': list(_log_handlers),
            'level': os.environ.get('DAILYTRACK_LOG_LEVEL', 'INFO'),
        },
    },
}
