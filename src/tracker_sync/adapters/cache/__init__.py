"""Result caches."""

from tracker_sync.adapters.cache.single_flight_cache import SingleFlightCache

__all__ = ["SingleFlightCache"]
