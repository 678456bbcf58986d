"""
api/limiter.py -- Shared slowapi rate limiter instance.

api/main.py registers it on app.state for SlowAPIMiddleware; the auth,
casinos and dashboard routers apply per-route limits with @limiter.limit().
Every router must use this one instance so they share a counter store.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
