"""
Analytics HTTP routes.

The collect router is public; the stats router belongs behind the host's auth.
"""

from .collect import create_collect_router
from .stats import create_stats_router

__all__ = ["create_collect_router", "create_stats_router"]
