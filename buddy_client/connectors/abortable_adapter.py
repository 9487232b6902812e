"""
buddy_client/connectors/abortable_adapter.py

requests transport adapter whose open sockets can be shut down from another
thread, so an abandoned call stops waiting on the server immediately.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3 import HTTPConnectionPool, HTTPSConnectionPool, PoolManager

logger = logging.getLogger(__name__)


class _SocketRegistry:
    """
    Sockets opened through one adapter. Once aborted, every registered socket
    and every socket connected afterwards is shut down.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sockets: list[socket.socket] = []
        self._aborted = False

    @property
    def aborted(self) -> bool:
        return self._aborted

    def attach(self, sock: socket.socket | None) -> None:
        if sock is None:
            return
        with self._lock:
            if not self._aborted:
                self._sockets.append(sock)
                return
        _shutdown(sock)

    def abort(self) -> int:
        with self._lock:
            self._aborted = True
            sockets, self._sockets = self._sockets, []
        for sock in sockets:
            _shutdown(sock)
        return len(sockets)


def _shutdown(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        # Already closed or never connected.
        pass


class _RegisteringConnectionMixin:
    registry: _SocketRegistry

    def connect(self) -> None:
        super().connect()  # type: ignore[misc]
        self.registry.attach(getattr(self, "sock", None))


def _registering_pool(pool_cls: type, registry: _SocketRegistry) -> type:
    connection_cls = type(
        f"Registering{pool_cls.ConnectionCls.__name__}",
        (_RegisteringConnectionMixin, pool_cls.ConnectionCls),
        {"registry": registry},
    )
    return type(f"Registering{pool_cls.__name__}", (pool_cls,), {"ConnectionCls": connection_cls})


class AbortableHTTPAdapter(HTTPAdapter):
    """
    HTTPAdapter without retries whose in-flight connections can be aborted.

    ``abort()`` is safe to call from any thread. The blocked request then
    fails with a requests ConnectionError instead of waiting for the server.
    """

    def __init__(self, **kwargs: Any) -> None:
        self._registry = _SocketRegistry()
        kwargs.setdefault("max_retries", 0)
        super().__init__(**kwargs)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        super().init_poolmanager(*args, **kwargs)
        self._install(self.poolmanager)

    def proxy_manager_for(self, proxy: str, **proxy_kwargs: Any) -> PoolManager:
        manager = super().proxy_manager_for(proxy, **proxy_kwargs)
        self._install(manager)
        return manager

    def send(self, request: requests.PreparedRequest, *args: Any, **kwargs: Any) -> requests.Response:
        if self._registry.aborted:
            raise requests.ConnectionError("Request aborted before it was sent.", request=request)
        return super().send(request, *args, **kwargs)

    def abort(self) -> None:
        closed = self._registry.abort()
        logger.debug("Aborted HTTP adapter open_sockets=%s", closed)

    def _install(self, manager: PoolManager) -> None:
        classes = manager.pool_classes_by_scheme
        # SOCKS managers bring their own pool classes; those are left alone.
        if classes.get("http") is not HTTPConnectionPool or classes.get("https") is not HTTPSConnectionPool:
            return
        manager.pool_classes_by_scheme = {
            "http": _registering_pool(HTTPConnectionPool, self._registry),
            "https": _registering_pool(HTTPSConnectionPool, self._registry),
        }


def abortable_session() -> requests.Session:
    """
    Session with an AbortableHTTPAdapter mounted for http and https.
    """

    session = requests.Session()
    adapter = AbortableHTTPAdapter()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def abort_session(session: Any) -> None:
    """
    Abort every AbortableHTTPAdapter mounted on ``session``.
    """

    adapters = getattr(session, "adapters", None) or {}
    for adapter in adapters.values():
        if isinstance(adapter, AbortableHTTPAdapter):
            adapter.abort()
