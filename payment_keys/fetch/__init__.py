"""
Key document retrieval.

- transport: ``GET(url)`` collaborators (httpx, or an inline document).
- fetcher: One retrieval plus the ``Cache-Control`` freshness hint.
"""
