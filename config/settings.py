from pathlib import Path

from decouple import Csv, config

# -------------------------------
# Diretórios base
# -------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -------------------------------
# Segurança e debug
# -------------------------------
SECRET_KEY = config("SECRET_KEY", default="dev-insecure-agenda-clinica")
DEBUG = config("DEBUG", default=False, cast=bool)
ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="localhost,127.0.0.1,testserver", cast=Csv())

SESSION_COOKIE_SECURE = config("SESSION_COOKIE_SECURE", default=False, cast=bool)
CSRF_COOKIE_SECURE    = config("CSRF_COOKIE_SECURE", default=False, cast=bool)
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

# -------------------------------
# Agenda
# -------------------------------
AGENDA_DEFAULT_DURATION_MINUTES    = config("AGENDA_DEFAULT_DURATION_MINUTES", default=50, cast=int)
AGENDA_PATIENT_DECLINE_AUTO_CANCEL = config("AGENDA_PATIENT_DECLINE_AUTO_CANCEL", default=True, cast=bool)
AGENDA_BATCH_MAX_WORKERS           = config("AGENDA_BATCH_MAX_WORKERS", default=4, cast=int)
AGENDA_BATCH_MAX_SIZE              = config("AGENDA_BATCH_MAX_SIZE", default=200, cast=int)
AGENDA_WORKDAY_START               = config("AGENDA_WORKDAY_START", default="08:00")
AGENDA_WORKDAY_END                 = config("AGENDA_WORKDAY_END", default="20:00")
AGENDA_SLOT_STEP_MINUTES           = config("AGENDA_SLOT_STEP_MINUTES", default=30, cast=int)
AGENDA_EVENTS_EXCHANGE             = config("AGENDA_EVENTS_EXCHANGE", default="agenda.events")
AGENDA_PUBLISH_WORKERS             = config("AGENDA_PUBLISH_WORKERS", default=2, cast=int)

# -------------------------------
# RabbitMQ (vazio desativa a publicação de eventos)
# -------------------------------
RABBITMQ_URL = config("RABBITMQ_URL", default="")

# -------------------------------
# Apps, Middleware, URLs
# -------------------------------
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "plugins.django_interface.apps.DjangoInterfaceConfig",
    "agenda_clinica_api.apps.AgendaConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "plugins.django_interface.request_middleware.RequestContextMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "agenda_clinica_api.urls"
WSGI_APPLICATION = "agenda_clinica_api.wsgi.application"
ASGI_APPLICATION = "agenda_clinica_api.asgi.application"

# -------------------------------
# Templates
# -------------------------------
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# -------------------------------
# REST Framework
# -------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "clinica_core.adapters.security.actor_authentication.ActorHeaderAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "plugins.django_interface.permissions.IsActor",
    ),
    "DEFAULT_RENDERER_CLASSES": (
        "rest_framework.renderers.JSONRenderer",
    ),
    "EXCEPTION_HANDLER": "plugins.django_interface.exception_handler.agenda_exception_handler",
    "UNAUTHENTICATED_USER": None,
}

# -------------------------------
# Banco de Dados
# -------------------------------
if config("DB_ENGINE", default="") == "postgres":
    DATABASES = {
        "default": {
            "ENGINE":   "django.db.backends.postgresql",
            "NAME":     config("DB_NAME"),
            "USER":     config("DB_USER"),
            "PASSWORD": config("DB_PASS"),
            "HOST":     config("DB_HOST", default="localhost"),
            "PORT":     config("DB_PORT", default=5432, cast=int),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": config("DB_NAME", default=str(BASE_DIR / "agenda.sqlite3")),
        }
    }

# -------------------------------
# Internacionalização
# -------------------------------
LANGUAGE_CODE = "pt-br"
TIME_ZONE     = "America/Sao_Paulo"
USE_I18N      = True
USE_TZ        = True

# -------------------------------
# Arquivos estáticos
# -------------------------------
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
