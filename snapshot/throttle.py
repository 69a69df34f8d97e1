"""
Minimum-interval throttle shared by every request a run makes
"""

import asyncio
import time
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class RequestThrottle:
    """
    Spaces requests at least ``interval`` seconds apart.
    
    The first request waits the full interval as well, so a run never opens
    with a burst. One instance is shared by all requests of a client, across
    tables and pagination cursors.
    """
    
    def __init__(self, interval: float):
        self.interval = max(0.0, interval)
        self._last_request_at: Optional[float] = None
        self._lock = asyncio.Lock()
    
    async def wait(self):
        async with self._lock:
            if self._last_request_at is None:
                delay = self.interval
            else:
                elapsed = time.monotonic() - self._last_request_at
                delay = self.interval - elapsed
            
            if delay > 0:
                await asyncio.sleep(delay)
            
            self._last_request_at = time.monotonic()
