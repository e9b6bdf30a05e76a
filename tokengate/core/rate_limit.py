"""Rate limiting configuration.

The verify endpoint fans out to up to three chain requests per call, so it
is limited per client IP to bound load on the upstream indexer.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# IP-based limiter (viewers are not authenticated by this service)
limiter = Limiter(key_func=get_remote_address)
