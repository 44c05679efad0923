"""
Stats Protocol Module

This module handles parsing of the katsubushi STATS reply.

Protocol Format:
    Request:  STATS\r\n
    Response: STAT <key> <value>\r\n   (zero or more)
              END\r\n
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable

STATS_COMMAND = b"STATS\r\n"

STAT_PREFIX = "STAT"
END_MARKER = "END"

# STAT keys carrying identifying strings rather than numbers
INFO_KEYS = frozenset(("pid", "version"))


def parse_float(value: str) -> float:
    """
    Parse a STAT value the way katsubushi formats numbers.

    Accepts decimal and exponent notation, inf/nan and hexadecimal floats
    such as 0x1p-2. Rejects digit separators (1_000) and surrounding
    whitespace, which float() alone would let through.

    Raises:
        ValueError: if value is not a number
    """
    if "_" in value or value != value.strip():
        raise ValueError(f"could not convert string to float: {value!r}")
    try:
        return float(value)
    except ValueError:
        if "0x" not in value.lower():
            raise
        return float.fromhex(value)


class StatsError(Exception):
    """Base class for failures while fetching stats from katsubushi."""


class StatsConnectionError(StatsError):
    """The connection to katsubushi failed or timed out."""


class StatsParseError(StatsError):
    """The STATS reply could not be parsed."""


@dataclass
class StatsSnapshot:
    """
    Result of one STATS exchange.

    Attributes:
        info: Identifying fields (version, pid) kept as strings
        stats: Every other STAT field parsed as a float
    """
    info: Dict[str, str] = field(default_factory=dict)
    stats: Dict[str, float] = field(default_factory=dict)

    @property
    def version(self) -> str:
        return self.info.get("version", "")

    @property
    def pid(self) -> str:
        return self.info.get("pid", "")

    @property
    def has_identity(self) -> bool:
        """Check that both version and pid were reported and are non-empty."""
        return bool(self.version) and bool(self.pid)

    def stat(self, key: str) -> float:
        """Return a numeric field, or 0.0 when this reply did not contain it."""
        return self.stats.get(key, 0.0)


class StatsParser:
    """
    Incremental parser for a STATS reply.

    Feed it one line at a time with feed_line(); it reports when the END
    marker has been seen. Lines that do not start with STAT, and STAT lines
    without both a key and a value, are ignored.

    Examples:
        >>> parser = StatsParser()
        >>> parser.feed_line("STAT version 1.2.3")
        False
        >>> parser.feed_line("STAT uptime 100")
        False
        >>> parser.feed_line("END")
        True
        >>> parser.snapshot.info, parser.snapshot.stats
        ({'version': '1.2.3'}, {'uptime': 100.0})
    """

    def __init__(self):
        self.snapshot = StatsSnapshot()
        self.finished = False

    def feed_line(self, line: str) -> bool:
        """
        Consume a single reply line.

        Args:
            line: One line of the reply, with or without its CRLF

        Returns:
            True once the END marker has been consumed.

        Raises:
            StatsParseError: if a numeric field has a non-numeric value
        """
        if self.finished:
            return True

        line = line.rstrip("\r\n")
        if line == END_MARKER:
            self.finished = True
            return True

        parts = line.split(" ")
        if parts[0] != STAT_PREFIX or len(parts) < 3:
            return False

        key, value = parts[1], parts[2]
        if key in INFO_KEYS:
            self.snapshot.info[key] = value
            return False

        try:
            self.snapshot.stats[key] = parse_float(value)
        except ValueError:
            raise StatsParseError(f"invalid value for {key}: {value!r}") from None
        return False

    def parse(self, lines: Iterable[str]) -> StatsSnapshot:
        """
        Parse a complete reply.

        Parsing stops at END; a reply that ends without END yields
        whatever was accumulated up to that point.
        """
        for line in lines:
            if self.feed_line(line):
                break
        return self.snapshot

    @classmethod
    def parse_text(cls, text: str) -> StatsSnapshot:
        """Parse a reply held in a single string."""
        return cls().parse(text.splitlines())
