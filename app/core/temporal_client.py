"""Shared Temporal client for code running outside the worker."""

import asyncio
from typing import Optional

from temporalio.client import Client

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

_client: Optional[Client] = None
_connect_lock = asyncio.Lock()


async def get_temporal_client() -> Client:
    """Connect on first use and reuse the connection afterwards."""
    global _client
    async with _connect_lock:
        if _client is None:
            target = f"{settings.temporal_host}:{settings.temporal_port}"
            LOGGER.info(f"Connecting Temporal client to {target} ({settings.temporal_namespace})")
            _client = await Client.connect(target, namespace=settings.temporal_namespace)
    return _client
