from slowapi import Limiter
from slowapi.util import get_remote_address

from .settings import get_settings

# Per-IP rate limiter shared by the app and the routers that decorate endpoints
limiter = Limiter(key_func=get_remote_address, default_limits=[get_settings().default_rate_limit])
