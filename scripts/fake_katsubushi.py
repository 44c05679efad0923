#!/usr/bin/env python3
"""
Fake katsubushi Server

Answers the STATS command with plausible, slowly changing values so the
exporter can be run end to end without a real katsubushi.

Usage:
    python scripts/fake_katsubushi.py                 # Listen on 127.0.0.1:11212
    python scripts/fake_katsubushi.py --port 11213    # Custom port
    python scripts/fake_katsubushi.py --no-identity   # Omit version/pid lines

Then, in another terminal:
    katsubushi-exporter --katsubushiPort 11212 --metricsInterval 5
    curl http://localhost:9298/metrics
"""

import argparse
import asyncio
import logging
import os
import random
import time

logger = logging.getLogger("fake_katsubushi")


class FakeKatsubushi:
    """Serves a STATS reply built from simulated counters."""

    def __init__(self, version: str = "1.6.0", identity: bool = True):
        self.version = version
        self.identity = identity
        self.started = time.time()
        self.total_connections = 0
        self.curr_connections = 0
        self.cmd_get = 0
        self.get_hits = 0

    def stats_reply(self) -> bytes:
        """Build the reply for one STATS command."""
        # Simulate some traffic since the last call
        gets = random.randint(0, 500)
        self.cmd_get += gets
        self.get_hits += int(gets * random.uniform(0.9, 1.0))

        lines = []
        if self.identity:
            lines.append(f"STAT pid {os.getpid()}")
        lines.append(f"STAT uptime {int(time.time() - self.started)}")
        lines.append(f"STAT time {int(time.time())}")
        if self.identity:
            lines.append(f"STAT version {self.version}")
        lines.append(f"STAT curr_connections {self.curr_connections}")
        lines.append(f"STAT total_connections {self.total_connections}")
        lines.append(f"STAT cmd_get {self.cmd_get}")
        lines.append(f"STAT get_hits {self.get_hits}")
        lines.append(f"STAT get_misses {self.cmd_get - self.get_hits}")
        lines.append("END")
        return ("\r\n".join(lines) + "\r\n").encode()

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        addr = writer.get_extra_info('peername')
        self.total_connections += 1
        self.curr_connections += 1
        try:
            while True:
                data = await reader.readline()
                if not data:
                    break
                command = data.decode(errors="replace").strip().upper()
                logger.info(f"{addr}: {command}")
                if command == "STATS":
                    writer.write(self.stats_reply())
                else:
                    writer.write(b"ERROR\r\n")
                await writer.drain()
        except ConnectionResetError:
            pass
        finally:
            self.curr_connections -= 1
            writer.close()


async def serve(host: str, port: int, fake: FakeKatsubushi) -> None:
    server = await asyncio.start_server(fake.handle_client, host, port)
    logger.info(f"Fake katsubushi listening on {host}:{port}")
    async with server:
        await server.serve_forever()


def main() -> None:
    parser = argparse.ArgumentParser(description="Fake katsubushi STATS server")
    parser.add_argument("--host", default="127.0.0.1", help="Address to bind")
    parser.add_argument("--port", type=int, default=11212, help="Port to bind")
    parser.add_argument("--version", default="1.6.0", help="Reported version")
    parser.add_argument(
        "--no-identity",
        action="store_true",
        help="Leave out the version and pid lines",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    fake = FakeKatsubushi(version=args.version, identity=not args.no_identity)
    try:
        asyncio.run(serve(args.host, args.port, fake))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
