"""Mock WebSocket for hub testing.

Implements the subset of ``aiohttp.web.WebSocketResponse`` that
``Connection`` writes to, recording every frame instead of sending it.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple, Union


class MockWebSocket:
    """Records frames written by a Connection's writer task.

    With ``fail_after`` set, writes raise ConnectionResetError once that
    many frames have been recorded, like a socket whose peer vanished.
    With ``gate`` set, each write waits for the event first.
    """

    def __init__(self, fail_after: Optional[int] = None, gate: Optional[asyncio.Event] = None):
        self.frames: List[Union[str, bytes]] = []
        self.close_calls: List[Tuple[int, bytes]] = []
        self.fail_after = fail_after
        self.gate = gate

    async def _check(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_after is not None and len(self.frames) >= self.fail_after:
            raise ConnectionResetError("Cannot write to closing transport")

    async def send_str(self, data: str) -> None:
        await self._check()
        self.frames.append(data)

    async def send_bytes(self, data: bytes) -> None:
        await self._check()
        self.frames.append(bytes(data))

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        self.close_calls.append((code, message))
        return True

    def json_frames(self) -> List[Dict[str, Any]]:
        return [json.loads(frame) for frame in self.frames if isinstance(frame, str)]
