"""API helper utilities."""
from api.helpers.errors import DOMAIN_ERRORS, to_http_exception

__all__ = [
    "DOMAIN_ERRORS",
    "to_http_exception",
]
