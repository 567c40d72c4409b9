"""
Production settings for the rota marketplace.
TLS is terminated at the edge proxy, which forwards internally via HTTP.
"""

from .base import *  # noqa: F401, F403

DEBUG = False

# Trust the X-Forwarded-Proto header injected by the proxy
SECURE_SSL_REDIRECT = False
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

SECURE_HSTS_SECONDS = 31536000
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True

ALLOWED_HOSTS = env.list(  # noqa: F405
    "ALLOWED_HOSTS",
    default=["localhost"],
)

CSRF_TRUSTED_ORIGINS = env.list(  # noqa: F405
    "CSRF_TRUSTED_ORIGINS",
    default=[],
)

LOGGING["root"]["level"] = "INFO"  # noqa: F405
