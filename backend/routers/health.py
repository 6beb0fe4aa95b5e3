"""
Health & cache router — health check and parsed-object cache endpoints.
"""
import os
from typing import Optional

from fastapi import APIRouter

from cache import all_caches

router = APIRouter(tags=["Health"])


@router.get("/api/health")
async def health_check():
    """Health check endpoint returning version information."""
    version = os.environ.get("SSL_IDENTITY_VERSION", "unknown")
    git_commit = os.environ.get("GIT_COMMIT", "unknown")

    return {
        "status": "healthy",
        "service": "ssl-identity",
        "version": version,
        "git_commit": git_commit,
    }


@router.post("/api/cache/invalidate", tags=["Cache"])
async def invalidate_cache(name: Optional[str] = None):
    """Clear the parsed-object caches. If name is provided, only that cache is cleared."""
    count = 0
    for cache in all_caches():
        if name is None or cache.name == name:
            count += cache.clear()
    if name:
        return {"message": f"Cleared {name} cache ({count} entries)"}
    return {"message": f"Cleared all caches ({count} entries)"}


@router.get("/api/cache/stats", tags=["Cache"])
async def cache_stats():
    """Get parsed-object cache statistics."""
    return {"caches": [cache.stats() for cache in all_caches()]}
