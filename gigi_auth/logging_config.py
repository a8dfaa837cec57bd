"""
Structured logging configuration for gigi-auth.

Supports two output formats:
  - **human** – coloured, single-line, readable
  - **json**  – newline-delimited JSON for log aggregators

Every handler installed by ``setup_logging`` carries a ``SecretFilter``.
The auth code only logs addresses, but messages built elsewhere (a caller's
``logger.info(f"... {args}")``, an exception string) can still carry key
material.  The filter renders the message once and masks:

  - ``password=...`` style pairs (password, passphrase, mnemonic, seed,
    private_key, secret)
  - runs of twelve or more BIP-39 words
  - hex strings of 64 characters or more (keys, seeds, ciphertexts)

Addresses (``0x`` + 40 hex) are left alone.

Usage:
    from gigi_auth.logging_config import setup_logging
    setup_logging(level="DEBUG", fmt="json", log_file="gigi.log")
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from gigi_auth.bip39 import wordlist

REDACTED = "[redacted]"
MIN_PHRASE_WORDS = 12

_SECRET_PAIR = re.compile(
    r"\b(password|passphrase|mnemonic|seed|private_key|secret)(\s*[=:]\s*)\S+",
    re.IGNORECASE,
)
_LONG_HEX = re.compile(r"\b(?:0x)?[0-9a-fA-F]{64,}\b")
_TOKEN = re.compile(r"\S+")
_PHRASE_WORDS: frozenset[str] | None = None


def _mask_phrases(text: str) -> str:
    global _PHRASE_WORDS
    if _PHRASE_WORDS is None:
        _PHRASE_WORDS = frozenset(wordlist())
    words = _PHRASE_WORDS
    spans: list[tuple[int, int]] = []
    run: list[re.Match] = []
    for match in _TOKEN.finditer(text):
        if match.group().strip("\"',.;:()[]{}").lower() in words:
            run.append(match)
            continue
        if len(run) >= MIN_PHRASE_WORDS:
            spans.append((run[0].start(), run[-1].end()))
        run = []
    if len(run) >= MIN_PHRASE_WORDS:
        spans.append((run[0].start(), run[-1].end()))

    for start, end in reversed(spans):
        text = text[:start] + REDACTED + text[end:]
    return text


def redact(text: str) -> str:
    """Mask anything in *text* that looks like key material."""
    text = _SECRET_PAIR.sub(lambda m: f"{m.group(1)}{m.group(2)}{REDACTED}", text)
    text = _LONG_HEX.sub(REDACTED, text)
    return _mask_phrases(text)


class SecretFilter(logging.Filter):
    """Rewrite each record's message with secrets masked; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(log_obj, default=str)


class _HumanFormatter(logging.Formatter):
    """Coloured, concise single-line format."""

    COLOURS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, colour: bool = True):
        super().__init__()
        self.colour = colour

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        prefix = f"{ts} [{record.levelname:<7}]"
        if self.colour:
            prefix = f"{self.COLOURS.get(record.levelname, '')}{prefix}{self.RESET}"
        return f"{prefix} {record.name}: {record.getMessage()}"


def setup_logging(
    level: str = "INFO",
    fmt: str = "human",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure the root logger.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
    fmt : str
        ``"human"`` for single-line output (coloured on a TTY), ``"json"``
        for newline-delimited JSON.
    log_file : str, optional
        If provided, logs are also written to this file, always as JSON.

    Each handler gets its own ``SecretFilter``.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # avoid duplicate handlers when called twice
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        console.setFormatter(_JSONFormatter())
    else:
        console.setFormatter(_HumanFormatter(colour=sys.stderr.isatty()))
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path))
        fh.setFormatter(_JSONFormatter())
        root.addHandler(fh)

    for handler in root.handlers:
        handler.addFilter(SecretFilter())
