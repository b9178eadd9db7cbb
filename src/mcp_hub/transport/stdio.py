"""mcp_hub.transport.stdio

Canal stdio: un message JSON-RPC par ligne sur stdin, une réponse par ligne sur stdout.

Important:
- Rien d'autre que du JSON-RPC ne doit être écrit sur stdout (les logs vont sur stderr).
- Le canal est privé au serveur qui l'a créé et ouvert une seule fois par processus.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import BinaryIO, Optional

from ..core.constants import JSONRPC_INVALID_REQUEST, JSONRPC_PARSE_ERROR, STDIO_STREAM_LIMIT
from ..core.jsonrpc import extract_request_id, jsonrpc_error
from .channel import BaseChannel

logger = logging.getLogger(__name__)


async def connect_stdin_reader(limit: int = STDIO_STREAM_LIMIT) -> asyncio.StreamReader:
    """Retourne un StreamReader non-bloquant connecté à stdin (binaire)."""

    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin.buffer)
    return reader


class StdioChannel(BaseChannel):
    """Canal stdio d'un serveur (reader/output injectables pour les tests)."""

    def __init__(
        self,
        server_id: str,
        reader: Optional[asyncio.StreamReader] = None,
        output: Optional[BinaryIO] = None,
    ):
        super().__init__(server_id)
        self._reader = reader
        self._output = output
        self._reader_task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self._reader_task is not None and not self._reader_task.done()

    async def open(self) -> None:
        if self.is_open:
            return
        if self._reader is None:
            self._reader = await connect_stdin_reader()
        if self._output is None:
            self._output = sys.stdout.buffer
        self._reader_task = asyncio.create_task(self._read_loop(self._reader), name=f"stdio-{self.server_id}")
        logger.info(f"Canal stdio ouvert pour {self.server_id}")

    async def close(self) -> None:
        task = self._reader_task
        self._reader_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def send(self, message: dict[str, object]) -> None:
        if self._output is None:
            logger.warning(f"Canal stdio {self.server_id} non ouvert, message ignoré")
            return
        self._output.write((json.dumps(message, ensure_ascii=False) + "\n").encode("utf-8"))
        self._output.flush()

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        while True:
            line = await reader.readline()
            if not line:
                logger.info(f"EOF sur stdin, canal {self.server_id} terminé")
                return

            raw = line.strip()
            if not raw:
                continue

            try:
                message: object = json.loads(raw)
            except (ValueError, UnicodeDecodeError):
                await self.send(jsonrpc_error(code=JSONRPC_PARSE_ERROR, message="Parse error", req_id=None))
                continue

            if not isinstance(message, dict):
                await self.send(
                    jsonrpc_error(
                        code=JSONRPC_INVALID_REQUEST,
                        message="Invalid Request",
                        req_id=extract_request_id(message),
                    )
                )
                continue

            try:
                await self.dispatch(message)
            except Exception as e:
                # Une ligne fautive ne doit pas arrêter la lecture de stdin.
                logger.error(f"Erreur de traitement stdio ({self.server_id}): {e}")
