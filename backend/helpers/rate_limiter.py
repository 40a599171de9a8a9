"""Rate limiter shared by main.py and the messaging router.

Lives outside main.py so routers can decorate endpoints without a circular
import. Message sends are keyed by client address; the per-route limit comes
from MESSAGE_RATE_LIMIT.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
