"""Primary-side websocket listener that accepts replica connections."""

import asyncio
import socket
from typing import Optional

from aiohttp import WSMsgType, web

from common.constants import REPLICATION_PATH, REPLICATION_PORT
from common.logging_config import get_logger
from appnode.replication.follower_registry import FollowerConnection, FollowerRegistry

logger = get_logger(__name__)


class ReplicationListener:
    """
    Accepts follower connections on the replication port once the node is primary.

    ``start`` is lazy and idempotent: the first call binds the port and
    returns once the site is accepting connections, every later call returns
    the first call's outcome. Each accepted connection is registered and then
    held by its own handler task, which only reads until the peer goes away.
    """

    def __init__(
        self,
        registry: FollowerRegistry,
        host: str = "0.0.0.0",
        port: int = REPLICATION_PORT,
        path: str = REPLICATION_PATH
    ):
        self.registry = registry
        self.host = host
        self.port = port
        self.path = path
        self.running = False
        self._started: Optional[bool] = None
        self._start_lock = asyncio.Lock()
        self._runner: Optional[web.AppRunner] = None

    async def start(self) -> bool:
        """
        Start accepting follower connections.

        Returns:
            True if the listener is accepting, False if the port could not be bound
        """
        async with self._start_lock:
            if self._started is not None:
                return self._started

            try:
                sock = self._bind()
            except OSError as e:
                logger.error(
                    f"Replication listener could not bind {self.host}:{self.port}: {e}. "
                    f"Assuming a listener is already running"
                )
                self._started = False
                return False

            app = web.Application()
            app.router.add_get(self.path, self._handle_follower)

            self._runner = web.AppRunner(app, handle_signals=False)
            await self._runner.setup()
            site = web.SockSite(self._runner, sock)
            await site.start()

            self.port = sock.getsockname()[1]
            self.running = True
            self._started = True
            logger.info(f"Replication listener accepting on {self.host}:{self.port}{self.path}")
            return True

    def _bind(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        # Still fails with EADDRINUSE while another socket is listening on the port.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
            sock.listen(128)
        except OSError:
            sock.close()
            raise
        sock.setblocking(False)
        return sock

    async def stop(self) -> None:
        await self.registry.close_all()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        self.running = False
        logger.info("Replication listener stopped")

    async def _handle_follower(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        peer = request.transport.get_extra_info("peername") if request.transport else None
        address = f"{peer[0]}:{peer[1]}" if peer else (request.remote or "unknown")
        conn = FollowerConnection(address, ws)
        await self.registry.register(conn)

        try:
            async for msg in ws:
                if msg.type == WSMsgType.ERROR:
                    logger.warning(f"Follower {address} connection error: {ws.exception()}")
                    break
                logger.debug(f"Ignoring {msg.type.name} frame from follower {address}")
        finally:
            await self.registry.unregister(conn)
            logger.info(f"Follower disconnected: {address}")

        return ws
