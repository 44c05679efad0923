"""
Stats Client Module

Opens a short-lived TCP connection to katsubushi, sends STATS and
parses the reply. Retrying is left to the caller.
"""

import asyncio
import logging

from ..config.settings import settings
from ..protocol.stats import (
    STATS_COMMAND,
    StatsConnectionError,
    StatsParseError,
    StatsParser,
    StatsSnapshot,
)

logger = logging.getLogger(__name__)


class StatsClient:
    """
    TCP client for the katsubushi STATS command.

    A fresh connection is opened for every fetch and closed before
    fetch_stats() returns, whether it succeeded or not. The whole
    exchange (connect, write, read) runs under a single deadline so a
    hung server cannot block the caller forever.

    Usage:
        client = StatsClient('localhost', 11212)
        snapshot = await client.fetch_stats()
        print(snapshot.version, snapshot.stat('uptime'))

    Attributes:
        host: katsubushi host
        port: katsubushi port
        timeout: Deadline in seconds for one complete exchange
    """

    def __init__(self, host: str = None, port: int = None, timeout: float = None):
        self.host = host if host is not None else settings.KATSUBUSHI_HOST
        self.port = port if port is not None else settings.KATSUBUSHI_PORT
        self.timeout = timeout if timeout is not None else settings.CONNECTION_TIMEOUT

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"

    async def fetch_stats(self) -> StatsSnapshot:
        """
        Fetch and parse one STATS reply.

        Returns:
            StatsSnapshot with the info and numeric fields of the reply

        Raises:
            StatsConnectionError: connect/write/read failed, the deadline expired
                or the target address is invalid
            StatsParseError: the reply contained an unparseable value
        """
        try:
            return await asyncio.wait_for(self._exchange(), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise StatsConnectionError(
                f"timeout after {self.timeout}s talking to {self.target}"
            ) from None
        except OSError as exc:
            raise StatsConnectionError(f"connection error with {self.target}: {exc}") from exc
        except (OverflowError, UnicodeError) as exc:
            # Port out of range or a host name that cannot be encoded
            raise StatsConnectionError(f"invalid target {self.target}: {exc}") from exc

    async def _exchange(self) -> StatsSnapshot:
        reader, writer = await asyncio.open_connection(self.host, self.port)
        logger.debug(f"Connected to {self.target}")

        try:
            writer.write(STATS_COMMAND)
            await writer.drain()

            parser = StatsParser()
            while True:
                try:
                    data = await reader.readline()
                except ValueError as exc:
                    # Line longer than the stream buffer limit
                    raise StatsParseError(f"reply line too long: {exc}") from None

                if not data:
                    logger.debug(f"{self.target} closed the connection before END")
                    break

                try:
                    line = data.decode()
                except UnicodeDecodeError:
                    raise StatsParseError(f"invalid encoding in reply: {data!r}") from None

                if parser.feed_line(line):
                    break

            return parser.snapshot

        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass


async def fetch_stats(host: str, port: int, timeout: float = None) -> StatsSnapshot:
    """
    Convenience function for a single fetch.

    Usage:
        snapshot = await fetch_stats('localhost', 11212)
    """
    return await StatsClient(host=host, port=port, timeout=timeout).fetch_stats()
