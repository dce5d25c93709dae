"""In-memory movie catalogue shared by all client connections.

Movies live in a fixed number of slots.  A new movie takes the first
free slot, and listings walk the slots in order, so a removed movie's
slot is reused by the next addition.  Every change is handed to an
optional journal so that the catalogue can be rebuilt later.
"""

from __future__ import annotations

import dataclasses
import threading
from typing import Iterable, List, Optional, Protocol

from cabbage.protocol import Movie, MovieSummary

__all__ = [
    "MAX_ENTRIES",
    "CatalogError",
    "Catalog",
    "genre_exists",
    "append_genre",
]

MAX_ENTRIES = 65536


class CatalogError(Exception):
    """A catalogue operation was refused; the message is meant for the client."""


class _Journal(Protocol):
    def add_movie(self, movie: Movie) -> object: ...

    def add_genre(self, movie_id: int, genre: str) -> object: ...

    def remove_movie(self, movie_id: int) -> object: ...


def genre_exists(genres: Optional[str], genre: Optional[str]) -> bool:
    """Tell whether genre is one of the comma-separated entries of genres."""
    if genres is None or genre is None:
        return False
    return genre in genres.split(",")


def append_genre(genres: Optional[str], genre: str) -> str:
    """Return genres with genre added as a new comma-separated entry."""
    return f"{genres},{genre}" if genres else genre


class Catalog:
    """A bounded, thread-safe collection of movies keyed by id."""

    def __init__(
        self,
        capacity: int = MAX_ENTRIES,
        journal: Optional[_Journal] = None,
        slots: Optional[Iterable[Optional[Movie]]] = None,
        next_id: int = 1,
    ) -> None:
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        initial = list(slots) if slots is not None else []
        if len(initial) > capacity:
            raise ValueError(
                f"{len(initial)} slots given for a capacity of {capacity}"
            )
        self._slots: List[Optional[Movie]] = initial + [None] * (capacity - len(initial))
        self._capacity = capacity
        self._journal = journal
        self._next_id = next_id
        self._count = sum(1 for movie in self._slots if movie is not None)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self._count

    @property
    def capacity(self) -> int:
        """The largest number of movies the catalogue holds."""
        return self._capacity

    @property
    def next_id(self) -> int:
        """The id the next added movie will receive."""
        return self._next_id

    def _find(self, movie_id: int) -> Optional[int]:
        return next(
            (
                index
                for index, movie in enumerate(self._slots)
                if movie is not None and movie.id == movie_id
            ),
            None,
        )

    def add_movie(
        self, title: str, genres: str, director: str, release_year: str
    ) -> Movie:
        """Store a new movie under a fresh id and return it."""
        with self._lock:
            if self._count >= self._capacity:
                raise CatalogError("Maximum number of movies reached")
            new_id = self._next_id
            self._next_id += 1
            free = next(
                (index for index, movie in enumerate(self._slots) if movie is None),
                None,
            )
            if free is None:
                raise CatalogError(
                    "Internal server error: no free slots found (concurrent addition?)"
                )
            movie = Movie(
                id=new_id,
                title=title or "",
                genres=genres or "",
                director=director or "",
                release_year=release_year or "",
            )
            self._slots[free] = movie
            self._count += 1
            if self._journal is not None:
                self._journal.add_movie(movie)
            return movie

    def add_genre(self, movie_id: int, genre: str) -> Movie:
        """Append one genre to a movie and return the updated movie."""
        genre = genre or ""
        if "," in genre:
            raise CatalogError("Genre cannot contain ','")
        with self._lock:
            index = self._find(movie_id)
            if index is None:
                raise CatalogError("Movie ID not found")
            movie = self._slots[index]
            if genre_exists(movie.genres, genre):
                raise CatalogError("Genre already exists for this movie")
            updated = dataclasses.replace(movie, genres=append_genre(movie.genres, genre))
            self._slots[index] = updated
            if self._journal is not None:
                self._journal.add_genre(updated.id, genre)
            return updated

    def remove_movie(self, movie_id: int) -> Movie:
        """Remove a movie and return what was stored."""
        with self._lock:
            index = self._find(movie_id)
            if index is None:
                raise CatalogError("Movie ID not found for removal")
            movie = self._slots[index]
            self._slots[index] = None
            self._count -= 1
            if self._journal is not None:
                self._journal.remove_movie(movie_id)
            return movie

    def get_movie(self, movie_id: int) -> Movie:
        """Return the movie with the given id."""
        with self._lock:
            index = self._find(movie_id)
            if index is None:
                raise CatalogError("Movie ID not found")
            return self._slots[index]

    def list_movies(self) -> List[MovieSummary]:
        """Return the id and title of every movie, in slot order."""
        with self._lock:
            return [
                MovieSummary(movie.id, movie.title)
                for movie in self._slots
                if movie is not None
            ]

    def list_detailed(self) -> List[Movie]:
        """Return every movie in full, in slot order."""
        with self._lock:
            return [movie for movie in self._slots if movie is not None]

    def list_by_genre(self, genre: str) -> List[MovieSummary]:
        """Return the id and title of every movie tagged with genre."""
        with self._lock:
            if self._count == 0:
                return []
            if not genre:
                raise CatalogError("Genre cannot be empty")
            if "," in genre:
                raise CatalogError("Genre cannot contain ','")
            return [
                MovieSummary(movie.id, movie.title)
                for movie in self._slots
                if movie is not None and genre_exists(movie.genres, genre)
            ]