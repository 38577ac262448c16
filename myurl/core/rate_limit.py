"""
Rate Limiting Configuration

Limits per client address for routes that call the backend on every hit.

- Uses slowapi (FastAPI-compatible, in-memory by default)
- Session polling is not limited: it only reads in-memory state
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Format: "count/period"
RATE_LIMITS = {
    "open_redirect": "60/minute",  # each visit resolves a link
    "preview": "60/minute",  # crawler unfurls
    "auth": "10/minute",  # login/signup attempts
}
