"""HTTP client for the upstream Materials Project service.

- MpRestClient: async REST client with API-key auth and typed error mapping
"""

from __future__ import annotations

from .mp_rest import MpRestClient, UpstreamPage

__all__ = [
    "MpRestClient",
    "UpstreamPage",
]
