"""
MPD integration over the plain-text client protocol.

Connects over TCP, a Unix socket path or a Linux abstract socket
(`@name`), logs in if a password is configured, and exposes the queue
commands the synchronizer needs.
"""

import os
import re
import socket
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from pin_radio.core.config import PlayerConfig
from pin_radio.core.errors import (
    PlayerCommandError,
    PlayerConnectionError,
    PlayerProtocolError,
)
from pin_radio.domain.library.models import PlayerStatus, QueueEntry

GREETING_PREFIX = "OK MPD "
ACK_PATTERN = re.compile(r"^ACK \[(\d+)@(\d+)\] \{([^}]*)\} (.*)$")


def quote_arg(arg) -> str:
    """Quote a command argument for the MPD protocol."""
    text = str(arg)
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_pairs(lines: List[str]) -> List[Tuple[str, str]]:
    """Split `key: value` response lines."""
    pairs = []
    for line in lines:
        key, sep, value = line.partition(": ")
        if not sep:
            raise PlayerProtocolError(f"Malformed response line: {line!r}")
        pairs.append((key, value))
    return pairs


def parse_songs(pairs: List[Tuple[str, str]]) -> List[QueueEntry]:
    """Group response pairs into songs; every song starts with `file`."""
    songs: List[Dict[str, str]] = []
    for key, value in pairs:
        if key == "file":
            songs.append({"file": value})
        elif songs:
            songs[-1].setdefault(key, value)
    return [
        QueueEntry(
            file=song["file"],
            pos=_to_int(song.get("Pos")),
            id=_to_int(song.get("Id")),
            title=song.get("Title"),
            artist=song.get("Artist"),
        )
        for song in songs
    ]


def parse_status(pairs: List[Tuple[str, str]]) -> PlayerStatus:
    status = dict(pairs)
    return PlayerStatus(
        state=status.get("state", "stop"),
        song_pos=_to_int(status.get("song")),
        song_id=_to_int(status.get("songid")),
        queue_length=_to_int(status.get("playlistlength")) or 0,
    )


class MPDClient:
    """Blocking MPD protocol client sharing one socket.

    Every command takes `lock`, so callers can hold it across several
    commands to keep them together.
    """

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._reader = sock.makefile("rb")
        self.lock = threading.RLock()
        self.version = self._read_greeting()

    def _read_greeting(self) -> str:
        line = self._read_line("greeting")
        if not line.startswith(GREETING_PREFIX):
            raise PlayerProtocolError(f"Unexpected greeting: {line!r}", "greeting")
        return line[len(GREETING_PREFIX):]

    def _read_line(self, command: str) -> str:
        try:
            raw = self._reader.readline()
        except OSError as e:
            raise PlayerConnectionError(f"Lost connection to MPD: {e}", command) from e
        if not raw:
            raise PlayerConnectionError("Connection closed by MPD", command)
        return raw.decode("utf-8").rstrip("\n")

    def _command(self, name: str, *args) -> List[Tuple[str, str]]:
        line = " ".join([name, *(quote_arg(arg) for arg in args)])
        with self.lock:
            try:
                self._sock.sendall((line + "\n").encode("utf-8"))
            except OSError as e:
                raise PlayerConnectionError(f"Lost connection to MPD: {e}", line) from e

            lines = []
            while True:
                response = self._read_line(line)
                if response == "OK":
                    return parse_pairs(lines)
                if response.startswith("ACK"):
                    match = ACK_PATTERN.match(response)
                    if match:
                        raise PlayerCommandError(
                            match.group(4), line, code=int(match.group(1))
                        )
                    raise PlayerCommandError(response, line)
                lines.append(response)

    def login(self, password: str) -> None:
        self._command("password", password)

    def status(self) -> PlayerStatus:
        return parse_status(self._command("status"))

    def current_song(self) -> Optional[QueueEntry]:
        songs = parse_songs(self._command("currentsong"))
        return songs[0] if songs else None

    def queue(self) -> List[QueueEntry]:
        return parse_songs(self._command("playlistinfo"))

    def delete(self, start: int, end: Optional[int] = None) -> None:
        """Delete queue positions [start, end); open-ended when end is None."""
        if end is not None and end <= start:
            return
        window = f"{start}:{end}" if end is not None else f"{start}:"
        self._command("delete", window)

    def push(self, file: str) -> Optional[int]:
        """Append a song to the queue and return its player id."""
        pairs = self._command("addid", file)
        return _to_int(dict(pairs).get("Id"))

    def play(self, pos: int) -> None:
        self._command("play", pos)

    def wait(self, subsystems: Sequence[str]) -> List[str]:
        """Block until one of the subsystems changes; return the changed ones."""
        pairs = self._command("idle", *subsystems)
        return [value for key, value in pairs if key == "changed"]

    def close(self) -> None:
        with self.lock:
            try:
                self._sock.sendall(b"close\n")
            except OSError:
                pass  # already gone
            self._reader.close()
            self._sock.close()


def open_socket(host: str, port: int, timeout: Optional[float] = None) -> socket.socket:
    """Open the socket MPD_HOST-style settings point at."""
    try:
        if host.startswith("/") or host.startswith("~"):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            sock.settimeout(timeout)
            sock.connect(os.path.expanduser(host))
        elif host.startswith("@"):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            sock.settimeout(timeout)
            # Linux abstract namespace
            sock.connect("\0" + host[1:])
        else:
            sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as e:
        raise PlayerConnectionError(f"Could not connect to MPD at {host}:{port}: {e}") from e
    return sock


def connect(config: PlayerConfig) -> MPDClient:
    """Connect (and log in) to MPD using the player configuration."""
    logger.info(f"Connecting to MPD at {config.host}:{config.port}")
    client = MPDClient(open_socket(config.host, config.port, config.timeout))
    if config.password:
        try:
            client.login(config.password)
        except PlayerCommandError as e:
            client.close()
            raise PlayerConnectionError(f"MPD rejected the password: {e}") from e
    logger.info(f"Connected to MPD {client.version}")
    return client
