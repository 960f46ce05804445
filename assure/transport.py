"""
transport.py -- CDP channel over a websocket
============================================

CDP is a JSON-RPC-like protocol over WebSocket. Each call is sent as:
  {"id": N, "method": "Domain.method", "params": {...}}
And the browser answers with:
  {"id": N, "result": {...}}                 -- on success
  {"id": N, "error": {"message": "..."}}     -- on failure
Events arrive at any time without an id:
  {"method": "Page.loadEventFired", "params": {...}}

CDPConnection keeps one reader task that routes responses to the future
registered for their id and hands events to one-shot subscribers (`once`).
Subscribe BEFORE issuing the call that triggers the event, otherwise a fast
event can be missed.

Target discovery uses the HTTP debug endpoints:
  GET http://127.0.0.1:9222/json/list   -> open targets
  PUT http://127.0.0.1:9222/json/new    -> new page target
"""

import asyncio
import json
import logging
from typing import Dict, List, Optional

import aiohttp
import websockets

from .errors import ProtocolError, TransportClosed

logger = logging.getLogger(__name__)

MAX_MESSAGE_SIZE = 50_000_000
DISCOVERY_TIMEOUT = 3


async def discover_page_ws_url(host, port):
    """
    Return the webSocketDebuggerUrl of the first page target, creating one if none.

    Raises aiohttp.ClientError / asyncio.TimeoutError when the debug port is
    not answering yet; callers retry.
    """
    base_url = f"http://{host}:{port}"
    timeout = aiohttp.ClientTimeout(total=DISCOVERY_TIMEOUT)
    async with aiohttp.ClientSession(timeout=timeout) as http:
        async with http.get(f"{base_url}/json/list") as resp:
            resp.raise_for_status()
            targets = await resp.json(content_type=None)

        for target in targets:
            if target.get("type") == "page" and target.get("webSocketDebuggerUrl"):
                return target["webSocketDebuggerUrl"]

        async with http.put(f"{base_url}/json/new?about:blank") as resp:
            resp.raise_for_status()
            target = await resp.json(content_type=None)
            return target["webSocketDebuggerUrl"]


class CDPConnection:
    """
    Async CDP client bound to a single page target.

    Usage:
        conn = await CDPConnection.open(ws_url)
        result = await conn.send("Runtime.evaluate", {"expression": "1 + 1"})
        await conn.close()
    """

    def __init__(self, ws, call_timeout: float = 30.0):
        self._ws = ws
        self._call_timeout = call_timeout
        self._msg_id = 0
        self._pending: Dict[int, asyncio.Future] = {}
        self._listeners: Dict[str, List[asyncio.Future]] = {}
        self._closed = False
        self._reader = asyncio.create_task(self._read_loop(), name="cdp-reader")

    @classmethod
    async def open(cls, ws_url, call_timeout=30.0):
        ws = await websockets.connect(ws_url, max_size=MAX_MESSAGE_SIZE, ping_interval=None)
        logger.debug(f"CDP connected to {ws_url[:80]}")
        return cls(ws, call_timeout=call_timeout)

    @property
    def connected(self) -> bool:
        return not self._closed

    async def send(self, method: str, params: Optional[dict] = None, timeout: Optional[float] = None) -> dict:
        """
        Send a CDP call and wait for its response.

        Returns the "result" dict. Raises ProtocolError on an error reply,
        TransportClosed if the channel drops, asyncio.TimeoutError if no answer
        arrives within the timeout.
        """
        if self._closed:
            raise TransportClosed(f"Cannot send {method}: connection closed")

        self._msg_id += 1
        msg_id = self._msg_id
        message = {"id": msg_id, "method": method}
        if params:
            message["params"] = params

        future = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = future
        try:
            await self._ws.send(json.dumps(message))
            response = await asyncio.wait_for(future, timeout or self._call_timeout)
        except websockets.ConnectionClosed as e:
            raise TransportClosed(f"Connection lost while sending {method}") from e
        finally:
            self._pending.pop(msg_id, None)

        if "error" in response:
            error = response["error"]
            raise ProtocolError(method, error.get("message", "CDP error"), error.get("code"))
        return response.get("result", {})

    def once(self, event: str) -> asyncio.Future:
        """Future resolved with the params of the next `event` notification."""
        future = asyncio.get_running_loop().create_future()
        if self._closed:
            future.set_exception(TransportClosed(f"Cannot wait for {event}: connection closed"))
            return future
        self._listeners.setdefault(event, []).append(future)
        return future

    async def close(self):
        """Close the websocket and stop the reader task."""
        self._closed = True
        try:
            await self._ws.close()
        finally:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._fail_all(TransportClosed("Connection closed"))

    async def _read_loop(self):
        try:
            async for raw in self._ws:
                try:
                    data = json.loads(raw)
                except ValueError:
                    logger.debug(f"CDP: ignoring non-JSON frame ({len(raw)} bytes)")
                    continue
                self._dispatch(data)
        except websockets.ConnectionClosed as e:
            logger.debug(f"CDP connection closed: {e}")
        finally:
            self._closed = True
            self._fail_all(TransportClosed("Connection to the browser was lost"))

    def _dispatch(self, data):
        if "id" in data:
            future = self._pending.get(data["id"])
            if future and not future.done():
                future.set_result(data)
            return

        method = data.get("method")
        waiters = self._listeners.pop(method, None)
        for future in waiters or ():
            if not future.done():
                future.set_result(data.get("params", {}))

    def _fail_all(self, error):
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
        for waiters in self._listeners.values():
            for future in waiters:
                if not future.done():
                    future.set_exception(error)
        self._listeners.clear()
