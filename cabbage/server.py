"""TCP server answering catalogue requests, one thread per client."""

from __future__ import annotations

import logging
import os
import re
import socket
import sys
import threading
from typing import Callable, List, Optional

from cabbage.catalog import MAX_ENTRIES, Catalog, CatalogError
from cabbage.movie_log import LogRestoreError, MovieLog, restore
from cabbage.protocol import (
    ConnectionClosed,
    Movie,
    ProtocolError,
    Request,
    RequestType,
    Response,
    ResponseType,
    encode_response,
    read_request,
)

__all__ = [
    "DEFAULT_PORT",
    "MAX_BACKLOG",
    "LOG_FILE",
    "handle_request",
    "serve_client",
    "run_server",
    "main",
]

DEFAULT_PORT = 12345
MAX_BACKLOG = 128
LOG_FILE = "cabbage.log"

_log = logging.getLogger(__name__)
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


class _TolerantJournal:
    """Forwards changes to a MovieLog, reporting write failures instead of raising."""

    def __init__(self, movie_log: MovieLog) -> None:
        self._movie_log = movie_log

    def _call(self, write: Callable[..., None], *args: object) -> None:
        try:
            write(*args)
        except (OSError, ValueError) as exc:
            _log.error("could not write to the log: %s", exc)

    def add_movie(self, movie: Movie) -> None:
        self._call(self._movie_log.add_movie, movie)

    def add_genre(self, movie_id: int, genre: str) -> None:
        self._call(self._movie_log.add_genre, movie_id, genre)

    def remove_movie(self, movie_id: int) -> None:
        self._call(self._movie_log.remove_movie, movie_id)


def handle_request(catalog: Catalog, request: Request) -> Response:
    """Apply one request to the catalogue and build the reply."""
    kind = request.type
    try:
        if kind == RequestType.ADD_MOVIE:
            movie = catalog.add_movie(
                request.title, request.genres, request.director, request.release_year
            )
            _log.info("Added movie '%s' (ID: %d)", movie.title, movie.id)
            return Response(ResponseType.MOVIE, movie=movie)
        if kind == RequestType.ADD_GENRE_TO_MOVIE:
            catalog.add_genre(request.movie_id, request.genre)
            _log.info("Added genre '%s' to movie ID %d", request.genre, request.movie_id)
            return Response(ResponseType.OK)
        if kind == RequestType.REMOVE_MOVIE:
            movie = catalog.remove_movie(request.movie_id)
            _log.info("Removing movie '%s' (ID: %d)", movie.title, movie.id)
            return Response(ResponseType.OK)
        if kind == RequestType.GET_MOVIE:
            return Response(ResponseType.MOVIE, movie=catalog.get_movie(request.movie_id))
        if kind == RequestType.LIST_MOVIES:
            return Response(ResponseType.MOVIE_LIST, movies=tuple(catalog.list_movies()))
        if kind == RequestType.LIST_MOVIES_DETAILED:
            return Response(
                ResponseType.MOVIE_LIST_DETAILED, movies=tuple(catalog.list_detailed())
            )
        if kind == RequestType.LIST_MOVIES_BY_GENRE:
            return Response(
                ResponseType.MOVIE_LIST, movies=tuple(catalog.list_by_genre(request.genre))
            )
    except CatalogError as exc:
        return Response(ResponseType.ERROR, message=str(exc))
    return Response(ResponseType.ERROR, message="Unknown C2S packet type received")


def serve_client(catalog: Catalog, conn: socket.socket) -> None:
    """Answer requests on conn until the client goes away, then close it."""
    name = conn.fileno()
    print(f"Client {name} connected.", flush=True)
    with conn, conn.makefile("rb") as stream:
        while True:
            try:
                request = read_request(stream)
            except (ConnectionClosed, ConnectionResetError):
                break
            except ProtocolError as exc:
                _log.error("Client %s sent a bad packet: %s", name, exc)
                break
            except OSError as exc:
                _log.error("Client %s receive error: %s", name, exc)
                break

            response = handle_request(catalog, request)
            if response.type is ResponseType.ERROR:
                print(f"Client {name} Error: {response.message}", file=sys.stderr)
            try:
                conn.sendall(encode_response(response))
            except (OSError, ProtocolError) as exc:
                _log.error("Failed to send response to client %s: %s", name, exc)
    print(f"Client {name} disconnected.", flush=True)


def run_server(
    port: int = DEFAULT_PORT, log_path: "str | os.PathLike[str]" = LOG_FILE
) -> None:
    """Restore the catalogue from log_path and serve clients on port forever.

    Raises LogRestoreError if the log cannot be replayed and OSError if
    the log or the listening socket cannot be opened.
    """
    print("Initializing server...")
    print(f"Initialized {MAX_ENTRIES} movie entry slots.")
    result = restore(log_path, MAX_ENTRIES)
    if result.existed:
        print("Log file restored successfully.")
        print(f"Current movie count: {result.movie_count}")
    else:
        print("Log file not found, starting fresh...")

    with MovieLog(log_path) as movie_log:
        catalog = Catalog(
            MAX_ENTRIES,
            journal=_TolerantJournal(movie_log),
            slots=result.slots,
            next_id=result.next_id,
        )
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
            server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server.bind(("", port))
            server.listen(MAX_BACKLOG)
            print(f"Server listening on port {port}", flush=True)
            while True:
                try:
                    conn, _ = server.accept()
                except OSError as exc:
                    _log.error("accept failed: %s", exc)
                    continue
                worker = threading.Thread(
                    target=serve_client, args=(catalog, conn), daemon=True
                )
                try:
                    worker.start()
                except RuntimeError as exc:
                    _log.error("could not start client thread: %s", exc)
                    conn.close()


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def main(argv: Optional[List[str]] = None) -> int:
    """Start the server; the optional first argument is the port."""
    args = sys.argv[1:] if argv is None else argv
    port = _atoi(args[0]) if args else DEFAULT_PORT
    try:
        run_server(port, LOG_FILE)
    except LogRestoreError as exc:
        print(exc, file=sys.stderr)
        print("Failed to restore log file", file=sys.stderr)
        return 1
    except (OSError, OverflowError) as exc:
        print(f"Server error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())