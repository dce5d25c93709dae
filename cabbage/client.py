"""Interactive command-line client for the movie catalogue server."""

from __future__ import annotations

import re
import socket
import sys
from typing import List, Optional, TextIO

from cabbage.protocol import (
    Movie,
    ProtocolError,
    Request,
    RequestType,
    Response,
    ResponseType,
    encode_request,
    read_response,
)

__all__ = [
    "DEFAULT_IP",
    "DEFAULT_PORT",
    "MAX_ARGS",
    "CommandError",
    "parse_command_line",
    "build_request",
    "format_response",
    "usage_text",
    "main",
]

DEFAULT_IP = "127.0.0.1"
DEFAULT_PORT = 12345
MAX_ARGS = 10

_PROGRAM = "cabbage-client"
_SPACE = " \t\n\v\f\r"
_LEADING_UINT = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]+)")
_ULONG_MAX = (1 << 64) - 1
_U32_MASK = 0xFFFFFFFF


class CommandError(Exception):
    """A command line could not be understood."""


def parse_command_line(line: str, max_args: int = MAX_ARGS) -> List[str]:
    """Split a command line into at most max_args arguments.

    Arguments are separated by whitespace; a double-quoted argument runs
    up to the next double quote and may hold spaces.
    """
    args: List[str] = []
    pos = 0
    end = len(line)
    while pos < end and len(args) < max_args:
        while pos < end and line[pos] in _SPACE:
            pos += 1
        if pos >= end:
            break
        if line[pos] == '"':
            close = line.find('"', pos + 1)
            if close < 0:
                raise CommandError("Error: Unmatched quote in command.")
            args.append(line[pos + 1 : close])
            pos = close + 1
        else:
            start = pos
            while pos < end and line[pos] not in _SPACE:
                pos += 1
            args.append(line[start:pos])
            pos += 1
    return args


def _parse_id(text: str) -> int:
    match = _LEADING_UINT.match(text)
    if match is None:
        return 0
    value = int(match.group(2))
    if value > _ULONG_MAX:
        value = _ULONG_MAX
    elif match.group(1) == "-":
        value = (-value) % (_ULONG_MAX + 1)
    return value & _U32_MASK


def build_request(args: List[str]) -> Request:
    """Turn parsed arguments into the request they describe."""
    command = args[0] if args else ""
    count = len(args)
    if command == "add" and count == 5:
        return Request(
            RequestType.ADD_MOVIE,
            title=args[1],
            genres=args[2],
            director=args[3],
            release_year=args[4],
        )
    if command == "list" and count == 1:
        return Request(RequestType.LIST_MOVIES)
    if command == "listd" and count == 1:
        return Request(RequestType.LIST_MOVIES_DETAILED)
    if command == "get" and count == 2:
        return Request(RequestType.GET_MOVIE, movie_id=_parse_id(args[1]))
    if command == "remove" and count == 2:
        return Request(RequestType.REMOVE_MOVIE, movie_id=_parse_id(args[1]))
    if command == "addgenre" and count == 3:
        return Request(
            RequestType.ADD_GENRE_TO_MOVIE, movie_id=_parse_id(args[1]), genre=args[2]
        )
    if command == "listgenre" and count == 2:
        return Request(RequestType.LIST_MOVIES_BY_GENRE, genre=args[1])
    raise CommandError(
        "Error: Invalid command or incorrect number of arguments. Type 'help' for usage."
    )


def _shown(text: Optional[str]) -> str:
    return text if text else "(null)"


def _format_movie(movie: Movie) -> str:
    return (
        f"  ID: {movie.id}\n"
        f"  Title: {_shown(movie.title)}\n"
        f"  Genres: {_shown(movie.genres)}\n"
        f"  Director: {_shown(movie.director)}\n"
        f"  Year: {_shown(movie.release_year)}\n"
    )


def format_response(response: Response) -> str:
    """Render a server response as the text shown to the user."""
    kind = response.type
    if kind == ResponseType.MOVIE:
        return _format_movie(response.movie) if response.movie is not None else ""
    if kind == ResponseType.MOVIE_LIST:
        lines = [f"Count: {len(response.movies)}\n"]
        lines += [f"  {item.id} - {_shown(item.title)}\n" for item in response.movies]
        return "".join(lines)
    if kind == ResponseType.MOVIE_LIST_DETAILED:
        total = len(response.movies)
        blocks = [
            f" Movie {number}/{total}:\n" + _format_movie(movie)
            for number, movie in enumerate(response.movies, start=1)
        ]
        return f"Count: {total}\n" + " -----\n".join(blocks)
    if kind == ResponseType.ERROR:
        return f"Error: {_shown(response.message)}\n"
    if kind == ResponseType.OK:
        return "Success!\n"
    return f"Unknown packet ({int(kind)})\n"


def usage_text() -> str:
    """Return the help text listing every command."""
    return (
        "Usage:\n"
        '  add "<title>" "<genres>" "<director>" "<year>"\n'
        '    Adds a new movie. Use quotes (") for arguments with spaces.\n'
        '    Genres field should be comma-separated (e.g., "Action,Comedy").\n'
        "  list\n"
        "    Lists all movies (ID and Title).\n"
        "  listd\n"
        "    Lists all movies with details.\n"
        "  get <movie_id>\n"
        "    Gets details for a specific movie ID.\n"
        "  remove <movie_id>\n"
        "    Removes a movie by its ID.\n"
        "  addgenre <movie_id> <genre>\n"
        "    Adds a single genre to a movie. Genre name should not contain spaces/commas.\n"
        '  listgenre <genre> | "<genre with spaces>"\n'
        "    Lists movies matching the genre. Use quotes for genres with spaces.\n"
        "  help\n"
        "    Displays this help message.\n"
        "  quit | exit\n"
        "    Disconnects and exits.\n"
    )


def _atoi(text: str) -> int:
    match = _LEADING_UINT.match(text)
    if match is None:
        return 0
    value = int(match.group(2))
    return -value if match.group(1) == "-" else value


def _session(conn: socket.socket, stdin: TextIO) -> None:
    with conn.makefile("rb") as responses:
        while True:
            print("> ", end="", flush=True)
            line = stdin.readline()
            if not line:
                print("\nEOF detected, exiting.")
                return
            line = line.split("\n", 1)[0]

            try:
                args = parse_command_line(line, MAX_ARGS)
            except CommandError as exc:
                print(exc, file=sys.stderr)
                continue
            if not args:
                continue

            if args[0] in ("quit", "exit"):
                print("Exiting...")
                return
            if args[0] == "help":
                print(usage_text(), end="")
                continue

            try:
                request = build_request(args)
            except CommandError as exc:
                print(exc, file=sys.stderr)
                continue

            try:
                conn.sendall(encode_request(request))
            except (OSError, ProtocolError) as exc:
                print(f"C2SPacket_send error: {exc}", file=sys.stderr)
                return

            try:
                response = read_response(responses)
            except (OSError, ProtocolError) as exc:
                print(f"S2CPacket_recv error: {exc}", file=sys.stderr)
                return
            print(format_response(response), end="", flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    """Connect to a server and run the interactive prompt."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print(f"Usage: {_PROGRAM} <server_ip> <server_port>", file=sys.stderr)
        return 1

    server_ip = args[0]
    server_port = _atoi(args[1]) if len(args) >= 2 else DEFAULT_PORT

    try:
        socket.inet_pton(socket.AF_INET, server_ip)
    except OSError:
        print("Invalid address/ Address not supported", file=sys.stderr)
        return 1

    conn = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    with conn:
        try:
            conn.connect((server_ip, server_port & 0xFFFF))
        except OSError as exc:
            print(f"Connection Failed: {exc}", file=sys.stderr)
            print(f"Usage: {_PROGRAM} <server_ip> <server_port>", file=sys.stderr)
            return 1

        print(f"Connected to server {server_ip}:{server_port}")
        print("Enter commands (type 'help' for options, 'quit' or 'exit' to stop):")
        _session(conn, sys.stdin)

    print("Client shut down.")
    return 0


if __name__ == "__main__":
    sys.exit(main())