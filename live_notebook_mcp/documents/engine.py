"""
Execution engines that run the source of a single code cell.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from jupyter_kernel_client import KernelClient
from loguru import logger

from ..core.errors import BackingStoreError


@dataclass
class EngineResult:
    """Outputs (nbformat output dicts) and status of one execution."""

    outputs: List[dict] = field(default_factory=list)
    execution_count: Optional[int] = None
    status: str = "ok"


class ExecutionEngine(ABC):
    """A kernel that executes cell source and returns its outputs."""

    @abstractmethod
    async def execute(self, source: str) -> EngineResult:
        """Runs ``source`` and returns its outputs once the kernel is idle again."""

    async def interrupt(self) -> None:
        """Interrupts the running execution, if any."""

    async def stop(self) -> None:
        """Releases the kernel connection."""


class JupyterKernelEngine(ExecutionEngine):
    """Runs code on a (possibly remote) Jupyter server kernel via ``jupyter_kernel_client``.

    The kernel is started lazily on first use. ``KernelClient.execute`` blocks,
    so it runs in a worker thread to keep the event loop free for other work.
    """

    def __init__(self, server_url: str, token: Optional[str] = None):
        self.server_url = server_url.rstrip("/")
        self.token = token
        self._client: Optional[KernelClient] = None

    @property
    def client(self) -> KernelClient:
        if self._client is None:
            raise BackingStoreError("Kernel has not been started.")
        return self._client

    async def start(self) -> KernelClient:
        if self._client is None:
            logger.debug(f"Starting kernel client on {self.server_url}")
            client = KernelClient(server_url=self.server_url, token=self.token)
            try:
                await asyncio.to_thread(client.start)
            except Exception as e:
                logger.error(f"Failed to start kernel on {self.server_url}: {e}")
                raise BackingStoreError(f"Failed to connect to Jupyter kernel at {self.server_url}: {e}") from e
            self._client = client
            logger.debug("Kernel started successfully")
        return self._client

    async def execute(self, source: str) -> EngineResult:
        client = await self.start()
        reply = await asyncio.to_thread(client.execute, source)
        reply = reply or {}
        return EngineResult(
            outputs=list(reply.get("outputs") or []),
            execution_count=reply.get("execution_count"),
            status=reply.get("status", "ok"),
        )

    async def interrupt(self) -> None:
        if self._client is None:
            return
        try:
            await asyncio.to_thread(self._client.interrupt)
        except Exception as e:
            logger.warning(f"Kernel interrupt failed: {e}")

    async def stop(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await asyncio.to_thread(client.stop)
        except Exception as e:
            logger.error(f"Error stopping kernel client: {e}")
