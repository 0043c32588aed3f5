"""Rate limiter configuration module.

This module is separate from main.py to avoid circular imports when routers
need to access the limiter.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

REGISTER_RATE_LIMIT = "3/minute"
LOGIN_RATE_LIMIT = "5/minute"

# Keyed by client address; imported by routers and main.py
limiter = Limiter(key_func=get_remote_address)
