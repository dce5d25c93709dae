"""Append-only journal of catalogue changes and its replay at start-up.

Each change is one text line:

    ADD <id> <title>|<genres>|<director>|<release_year>
    ADDGENRE <id> <genre>
    REM <id>

Replaying the lines in order rebuilds the slots of the catalogue.
"""

from __future__ import annotations

import bisect
import dataclasses
import heapq
import logging
import os
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from cabbage.catalog import append_genre, genre_exists
from cabbage.protocol import Movie

__all__ = ["LOG_BUFFER_SIZE", "MovieLog", "RestoreResult", "LogRestoreError", "restore"]

LOG_BUFFER_SIZE = 4096

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"
_SPACE = " \t\n\v\f\r"
_UINT = re.compile(rf"[{_SPACE}]*([+-]?)([0-9]+)")
_WORD = re.compile(rf"[{_SPACE}]*([^{_SPACE}]+)")
_LINE_END = re.compile(r"[\r\n]")

_log = logging.getLogger(__name__)


class LogRestoreError(Exception):
    """The log held lines that could not be replayed.

    ``errors`` lists what went wrong; ``result`` holds the state rebuilt
    from the lines that could be replayed.
    """

    def __init__(self, errors: List[str], result: "RestoreResult") -> None:
        super().__init__(f"Log Restore finished with {len(errors)} parsing errors.")
        self.errors = list(errors)
        self.result = result


@dataclass
class RestoreResult:
    """State rebuilt from a log file."""

    slots: List[Optional[Movie]]
    movie_count: int
    next_id: int
    existed: bool


class MovieLog:
    """An open log file to which catalogue changes are appended."""

    def __init__(self, path: "str | os.PathLike[str]") -> None:
        self.path = os.fspath(path)
        flags = os.O_WRONLY | os.O_CREAT | os.O_APPEND | getattr(os, "O_BINARY", 0)
        self._fd: Optional[int] = os.open(self.path, flags, 0o644)

    def close(self) -> None:
        """Close the file; further writes raise ValueError."""
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "MovieLog":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _write(self, entry: str) -> None:
        if self._fd is None:
            raise ValueError("Logger not initialized.")
        data = entry.encode(_ENCODING, _ERRORS)
        if len(data) >= LOG_BUFFER_SIZE:
            raise ValueError(
                f"log entry of {len(data)} bytes exceeds the {LOG_BUFFER_SIZE}-byte limit"
            )
        written = os.write(self._fd, data)
        if written != len(data):
            raise OSError(f"Partial write to log file ({written} / {len(data)} bytes).")

    def add_movie(self, movie: Movie) -> None:
        """Record that a movie was added."""
        self._write(
            f"ADD {movie.id} {movie.title or ''}|{movie.genres or ''}|"
            f"{movie.director or ''}|{movie.release_year or ''}\n"
        )

    def add_genre(self, movie_id: int, genre: str) -> None:
        """Record that a genre was appended to a movie."""
        self._write(f"ADDGENRE {movie_id} {genre or ''}\n")

    def remove_movie(self, movie_id: int) -> None:
        """Record that a movie was removed."""
        self._write(f"REM {movie_id}\n")


class _SlotTable:
    """Slots filled lowest-index first, with lookup by movie id."""

    def __init__(self, capacity: int) -> None:
        self.slots: List[Optional[Movie]] = [None] * capacity
        self._free = list(range(capacity))
        self._where: Dict[int, List[int]] = {}

    def add(self, movie: Movie) -> bool:
        if not self._free:
            return False
        index = heapq.heappop(self._free)
        self.slots[index] = movie
        bisect.insort(self._where.setdefault(movie.id, []), index)
        return True

    def find(self, movie_id: int) -> Optional[int]:
        indices = self._where.get(movie_id)
        return indices[0] if indices else None

    def remove(self, movie_id: int) -> bool:
        index = self.find(movie_id)
        if index is None:
            return False
        self._where[movie_id].pop(0)
        self.slots[index] = None
        heapq.heappush(self._free, index)
        return True

    def count(self) -> int:
        return len(self.slots) - len(self._free)


def _scan_u32(text: str, start: int = 0) -> Optional[Tuple[int, int]]:
    match = _UINT.match(text, start)
    if match is None:
        return None
    value = int(match.group(2))
    if match.group(1) == "-":
        value = -value
    return value % (1 << 32), match.end()


def _replay_add(line: str, table: _SlotTable, errors: List[str]) -> Optional[int]:
    data = line[4:]
    genres_at = data.find("|")
    director_at = data.find("|", genres_at + 1) if genres_at >= 0 else -1
    year_at = data.find("|", director_at + 1) if director_at >= 0 else -1
    if year_at < 0:
        errors.append(f"Log Restore Error (ADD): Malformed line: {line}")
        return None

    head = data[:genres_at]
    scanned = _scan_u32(head)
    if scanned is None:
        errors.append(f"Log Restore Error (ADD): Failed ID parse: {line}")
        return None
    movie_id = scanned[0]
    space = head.find(" ")
    if space < 0:
        errors.append(f"Log Restore Error (ADD): Malformed title/ID: {line}")
        return None

    movie = Movie(
        id=movie_id,
        title=head[space + 1 :],
        genres=data[genres_at + 1 : director_at],
        director=data[director_at + 1 : year_at],
        release_year=data[year_at + 1 :],
    )
    if not table.add(movie):
        errors.append(f"Log Restore Error (ADD): No free slots for ID {movie_id}.")
        return None
    return movie_id


def _replay_remove(line: str, table: _SlotTable, errors: List[str]) -> None:
    scanned = _scan_u32(line, 4)
    if scanned is None:
        errors.append(f"Log Restore Error (REM): Malformed line: {line}")
        return
    movie_id = scanned[0]
    if not table.remove(movie_id):
        _log.warning("Log Restore Warning (REM): ID %d not found.", movie_id)


def _replay_add_genre(line: str, table: _SlotTable, errors: List[str]) -> None:
    scanned = _scan_u32(line, 9)
    word = _WORD.match(line, scanned[1]) if scanned is not None else None
    if scanned is None or word is None:
        errors.append(f"Log Restore Error (ADDGENRE): Malformed line: {line}")
        return
    movie_id, genre = scanned[0], word.group(1)
    index = table.find(movie_id)
    if index is None:
        _log.warning(
            "Log Restore Warning (ADDGENRE): ID %d not found for genre '%s'.",
            movie_id,
            genre,
        )
        return
    movie = table.slots[index]
    if not genre_exists(movie.genres, genre):
        table.slots[index] = dataclasses.replace(
            movie, genres=append_genre(movie.genres, genre)
        )


def restore(path: "str | os.PathLike[str]", capacity: int) -> RestoreResult:
    """Rebuild catalogue slots by replaying the log at path.

    A missing file yields an empty result with ``existed`` false.  Raises
    LogRestoreError, carrying the partial result, if any line could not
    be replayed.
    """
    table = _SlotTable(capacity)
    try:
        handle = open(path, "rb")
    except FileNotFoundError:
        return RestoreResult(slots=table.slots, movie_count=0, next_id=1, existed=True and False)

    errors: List[str] = []
    max_id_seen = 0
    with handle:
        for raw in handle:
            line = _LINE_END.split(raw.decode(_ENCODING, _ERRORS), maxsplit=1)[0]
            seen = len(errors)
            if line.startswith("ADD "):
                movie_id = _replay_add(line, table, errors)
                if movie_id is not None:
                    max_id_seen = max(max_id_seen, movie_id)
            elif line.startswith("REM "):
                _replay_remove(line, table, errors)
            elif line.startswith("ADDGENRE "):
                _replay_add_genre(line, table, errors)
            elif line:
                errors.append(f"Log Restore Warning: Unknown line type: {line}")
            for message in errors[seen:]:
                _log.error("%s", message)

    result = RestoreResult(
        slots=table.slots,
        movie_count=table.count(),
        next_id=max_id_seen + 1,
        existed=True,
    )
    if errors:
        raise LogRestoreError(errors, result)
    return result