import os

os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret-key")

from .settings import *  # noqa: E402,F401,F403


DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

FRONTDESK_STORAGE = "database"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
