# cabbage

A small movie catalogue served over TCP. The server keeps movies in memory.
It records every change in an append-only journal and rebuilds its state from
that journal when it starts. An interactive client sends commands to the
server and prints the replies.

## Installation

```
pip install .
```

## Running the server

```
cabbage-server [port]
```

The server listens on port 12345 by default. It writes its journal to
`cabbage.log` in the current directory. If that file already exists when the
server starts, the catalogue is restored from it. If the journal has lines
that cannot be replayed, the server reports them and exits with status 1.

The catalogue holds at most 65536 movies. Each connection is handled on its
own thread.

## Running the client

```
cabbage-client <server_ip> [server_port]
```

The server address must be an IPv4 address. The port defaults to 12345.
Once connected, type commands at the `>` prompt. Put arguments that contain
spaces in double quotes.

| Command | Effect |
| --- | --- |
| `add "<title>" "<genres>" "<director>" "<year>"` | add a movie; genres are comma-separated |
| `list` | list every movie's id and title |
| `listd` | list every movie with all details |
| `get <movie_id>` | show one movie |
| `remove <movie_id>` | remove a movie |
| `addgenre <movie_id> <genre>` | add a single genre to a movie |
| `listgenre <genre>` | list the movies that have a genre |
| `help` | show the command summary |
| `quit` / `exit` | disconnect |

Example session:

```
> add "The Matrix" "Action,Sci-Fi" "Wachowski" "1999"
  ID: 1
  Title: The Matrix
  Genres: Action,Sci-Fi
  Director: Wachowski
  Year: 1999
> addgenre 1 Cyberpunk
Success!
> listgenre Action
Count: 1
  1 - The Matrix
```

## Journal format

Each change is one line of `cabbage.log`:

```
ADD <id> <title>|<genres>|<director>|<release_year>
ADDGENRE <id> <genre>
REM <id>
```

## Using the library

- `cabbage.protocol` defines the binary wire format. It provides the
  `Request` and `Response` packets, the `RequestType` and `ResponseType`
  codes, the `Movie` and `MovieSummary` records, and `encode_request`,
  `read_request`, `encode_response` and `read_response` for any binary
  stream. Every packet starts with a one-byte type code; integers are
  big-endian 32-bit values and strings are a 32-bit length followed by UTF-8
  bytes. A stream that ends early raises `ConnectionClosed`, an unknown type
  code raises `ProtocolError`.
- `cabbage.catalog.Catalog` is the thread-safe in-memory store. Refused
  operations raise `CatalogError`. It takes an optional journal: any object
  with `add_movie`, `add_genre` and `remove_movie` methods, such as
  `cabbage.movie_log.MovieLog`.
- `cabbage.movie_log.restore(path, capacity)` rebuilds a catalogue's slots
  from an existing journal file and returns a `RestoreResult`. If lines could
  not be replayed it raises `LogRestoreError`, which carries the partial
  result.
- `cabbage.server.handle_request(catalog, request)` answers a single request
  against a catalogue, and `cabbage.server.run_server(port, log_path)` runs
  the whole server.
- `cabbage.client` provides `parse_command_line`, `build_request` and
  `format_response`, the pieces the interactive prompt is built from.

## Limitations

Only one server should use a given journal file at a time; nothing guards
against two servers appending to the same file. There is no authentication
and no encryption on the connection.

## Running the tests

```
pip install ".[test]"
pytest
```