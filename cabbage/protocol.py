"""Wire format for the movie catalogue protocol.

Every packet starts with a one-byte type code followed by its payload.
Integers are unsigned 32-bit big-endian values; strings are a 32-bit
length followed by that many bytes, with no terminator.  A string of
length zero stands for an empty or absent value.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, Sequence, Union

__all__ = [
    "Movie",
    "MovieSummary",
    "RequestType",
    "ResponseType",
    "Request",
    "Response",
    "ProtocolError",
    "ConnectionClosed",
    "encode_request",
    "read_request",
    "encode_response",
    "read_response",
]

_U32 = struct.Struct("!I")
_U32_MAX = 0xFFFFFFFF
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class ProtocolError(Exception):
    """A packet could not be encoded or decoded."""


class ConnectionClosed(ProtocolError):
    """The peer closed the stream before a whole packet arrived."""


class RequestType(IntEnum):
    """Type codes of packets sent from client to server."""

    UNKNOWN = 0x00
    ADD_MOVIE = 0x01
    ADD_GENRE_TO_MOVIE = 0x02
    REMOVE_MOVIE = 0x03
    LIST_MOVIES = 0x04
    LIST_MOVIES_DETAILED = 0x05
    GET_MOVIE = 0x06
    LIST_MOVIES_BY_GENRE = 0x07


class ResponseType(IntEnum):
    """Type codes of packets sent from server to client."""

    UNKNOWN = 0x00
    MOVIE = 0x01
    MOVIE_LIST = 0x02
    MOVIE_LIST_DETAILED = 0x03
    ERROR = 0x04
    OK = 0x05


@dataclass(frozen=True)
class Movie:
    """A catalogue entry; genres is a comma-separated list."""

    id: int
    title: str = ""
    genres: str = ""
    director: str = ""
    release_year: str = ""


@dataclass(frozen=True)
class MovieSummary:
    """The id and title of a movie, as sent in plain listings."""

    id: int
    title: str = ""


@dataclass(frozen=True)
class Request:
    """A client request; only the fields its type uses are sent."""

    type: RequestType
    movie_id: int = 0
    title: str = ""
    genres: str = ""
    director: str = ""
    release_year: str = ""
    genre: str = ""


@dataclass(frozen=True)
class Response:
    """A server response; only the fields its type uses are sent."""

    type: ResponseType
    movie: Movie | None = None
    movies: Sequence[Union[Movie, MovieSummary]] = ()
    message: str = ""


def _pack_u32(value: int) -> bytes:
    if not 0 <= value <= _U32_MAX:
        raise ProtocolError(f"value {value} does not fit in 32 bits")
    return _U32.pack(value)


def _pack_str(text: str | None) -> bytes:
    data = (text or "").encode(_ENCODING, _ERRORS)
    return _pack_u32(len(data)) + data


def _pack_movie(movie: Movie) -> bytes:
    return b"".join(
        (
            _pack_u32(movie.id),
            _pack_str(movie.title),
            _pack_str(movie.genres),
            _pack_str(movie.director),
            _pack_str(movie.release_year),
        )
    )


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining:
        chunk = stream.read(remaining)
        if not chunk:
            raise ConnectionClosed("connection closed by peer")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _read_u32(stream: BinaryIO) -> int:
    return _U32.unpack(_read_exact(stream, _U32.size))[0]


def _read_str(stream: BinaryIO) -> str:
    length = _read_u32(stream)
    if length == 0:
        return ""
    return _read_exact(stream, length).decode(_ENCODING, _ERRORS)


def _read_movie(stream: BinaryIO) -> Movie:
    movie_id = _read_u32(stream)
    return Movie(
        id=movie_id,
        title=_read_str(stream),
        genres=_read_str(stream),
        director=_read_str(stream),
        release_year=_read_str(stream),
    )


def _read_type(stream: BinaryIO) -> int:
    return _read_exact(stream, 1)[0]


def encode_request(request: Request) -> bytes:
    """Serialise a request into the bytes sent on the wire."""
    try:
        kind = RequestType(request.type)
    except ValueError:
        raise ProtocolError(f"unknown request type {request.type!r}") from None

    parts = [bytes((kind,))]
    if kind is RequestType.ADD_MOVIE:
        parts += [
            _pack_str(request.title),
            _pack_str(request.genres),
            _pack_str(request.director),
            _pack_str(request.release_year),
        ]
    elif kind is RequestType.ADD_GENRE_TO_MOVIE:
        parts += [_pack_u32(request.movie_id), _pack_str(request.genre)]
    elif kind in (RequestType.REMOVE_MOVIE, RequestType.GET_MOVIE):
        parts.append(_pack_u32(request.movie_id))
    elif kind is RequestType.LIST_MOVIES_BY_GENRE:
        parts.append(_pack_str(request.genre))
    return b"".join(parts)


def read_request(stream: BinaryIO) -> Request:
    """Read one request from a binary stream.

    Raises ConnectionClosed if the stream ends early and ProtocolError
    for an unknown type code.
    """
    code = _read_type(stream)
    try:
        kind = RequestType(code)
    except ValueError:
        raise ProtocolError(f"unknown request type {code}") from None

    if kind is RequestType.ADD_MOVIE:
        title = _read_str(stream)
        genres = _read_str(stream)
        director = _read_str(stream)
        release_year = _read_str(stream)
        return Request(
            kind,
            title=title,
            genres=genres,
            director=director,
            release_year=release_year,
        )
    if kind is RequestType.ADD_GENRE_TO_MOVIE:
        movie_id = _read_u32(stream)
        return Request(kind, movie_id=movie_id, genre=_read_str(stream))
    if kind in (RequestType.REMOVE_MOVIE, RequestType.GET_MOVIE):
        return Request(kind, movie_id=_read_u32(stream))
    if kind is RequestType.LIST_MOVIES_BY_GENRE:
        return Request(kind, genre=_read_str(stream))
    return Request(kind)


def encode_response(response: Response) -> bytes:
    """Serialise a response into the bytes sent on the wire."""
    try:
        kind = ResponseType(response.type)
    except ValueError:
        raise ProtocolError(f"unknown response type {response.type!r}") from None

    parts = [bytes((kind,))]
    if kind is ResponseType.MOVIE:
        if response.movie is None:
            raise ProtocolError("movie response carries no movie")
        parts.append(_pack_movie(response.movie))
    elif kind is ResponseType.MOVIE_LIST:
        parts.append(_pack_u32(len(response.movies)))
        for item in response.movies:
            parts += [_pack_u32(item.id), _pack_str(item.title)]
    elif kind is ResponseType.MOVIE_LIST_DETAILED:
        parts.append(_pack_u32(len(response.movies)))
        for item in response.movies:
            if not isinstance(item, Movie):
                raise ProtocolError("detailed listing needs full movies")
            parts.append(_pack_movie(item))
    elif kind is ResponseType.ERROR:
        parts.append(_pack_str(response.message))
    return b"".join(parts)


def read_response(stream: BinaryIO) -> Response:
    """Read one response from a binary stream.

    Raises ConnectionClosed if the stream ends early and ProtocolError
    for an unknown type code.
    """
    code = _read_type(stream)
    try:
        kind = ResponseType(code)
    except ValueError:
        raise ProtocolError(f"unknown response type {code}") from None

    if kind is ResponseType.MOVIE:
        return Response(kind, movie=_read_movie(stream))
    if kind is ResponseType.MOVIE_LIST:
        count = _read_u32(stream)
        summaries = []
        for _ in range(count):
            movie_id = _read_u32(stream)
            summaries.append(MovieSummary(movie_id, _read_str(stream)))
        return Response(kind, movies=tuple(summaries))
    if kind is ResponseType.MOVIE_LIST_DETAILED:
        count = _read_u32(stream)
        return Response(kind, movies=tuple(_read_movie(stream) for _ in range(count)))
    if kind is ResponseType.ERROR:
        return Response(kind, message=_read_str(stream))
    return Response(kind)