"""
Key snapshot caching.

- cache: Guarded cache state (snapshot, last refresh, freshness window,
  in-flight refresh).
- coordinator: Single-flight refresh on top of the cache.

Both share one lock, owned by ``KeyCache``. It is never held across an
``await``.
"""
