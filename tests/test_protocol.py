import io

import pytest

from cabbage.protocol import (
    ConnectionClosed,
    Movie,
    MovieSummary,
    ProtocolError,
    Request,
    RequestType,
    Response,
    ResponseType,
    encode_request,
    encode_response,
    read_request,
    read_response,
)


class TrickleStream:
    """A stream that hands out one byte per read call."""

    def __init__(self, data):
        self._buffer = io.BytesIO(data)

    def read(self, size):
        return self._buffer.read(min(size, 1))


def roundtrip_request(request):
    return read_request(io.BytesIO(encode_request(request)))


def roundtrip_response(response):
    return read_response(io.BytesIO(encode_response(response)))


def test_type_codes_match_wire_values():
    encoded = encode_request(Request(RequestType.LIST_MOVIES_BY_GENRE, genre=""))
    assert encoded == b"\x07\x00\x00\x00\x00"
    assert encode_response(Response(ResponseType.OK)) == b"\x05"
    assert read_response(io.BytesIO(b"\x05")).type is ResponseType.OK


def test_list_request_is_single_type_byte():
    assert encode_request(Request(RequestType.LIST_MOVIES)) == b"\x04"


def test_get_request_wire_bytes():
    data = encode_request(Request(RequestType.GET_MOVIE, movie_id=7))
    assert data == b"\x06\x00\x00\x00\x07"


def test_error_response_wire_bytes():
    data = encode_response(Response(ResponseType.ERROR, message="hi"))
    assert data == b"\x04\x00\x00\x00\x02hi"


@pytest.mark.parametrize(
    "request_",
    [
        Request(
            RequestType.ADD_MOVIE,
            title="Alien",
            genres="Horror,Sci-Fi",
            director="Ridley Scott",
            release_year="1979",
        ),
        Request(RequestType.ADD_GENRE_TO_MOVIE, movie_id=3, genre="Thriller"),
        Request(RequestType.REMOVE_MOVIE, movie_id=12),
        Request(RequestType.GET_MOVIE, movie_id=0xFFFFFFFF),
        Request(RequestType.LIST_MOVIES),
        Request(RequestType.LIST_MOVIES_DETAILED),
        Request(RequestType.LIST_MOVIES_BY_GENRE, genre="Science Fiction"),
        Request(RequestType.UNKNOWN),
    ],
)
def test_request_roundtrip(request_):
    assert roundtrip_request(request_) == request_


def test_request_ignores_fields_its_type_does_not_use():
    sent = Request(RequestType.REMOVE_MOVIE, movie_id=5, title="ignored")
    assert roundtrip_request(sent) == Request(RequestType.REMOVE_MOVIE, movie_id=5)


def test_non_ascii_strings_roundtrip():
    sent = Request(RequestType.LIST_MOVIES_BY_GENRE, genre="Ação")
    assert roundtrip_request(sent).genre == "Ação"


def test_movie_response_roundtrip():
    movie = Movie(1, "Heat", "Crime,Drama", "Michael Mann", "1995")
    assert roundtrip_response(Response(ResponseType.MOVIE, movie=movie)) == Response(
        ResponseType.MOVIE, movie=movie
    )


def test_movie_list_roundtrip_keeps_order():
    movies = (MovieSummary(4, "B"), MovieSummary(2, "A"), MovieSummary(9, "C"))
    received = roundtrip_response(Response(ResponseType.MOVIE_LIST, movies=movies))
    assert received.type is ResponseType.MOVIE_LIST
    assert received.movies == movies


def test_detailed_list_roundtrip():
    movies = (
        Movie(1, "Heat", "Crime", "Michael Mann", "1995"),
        Movie(2, "Up", "Animation,Family", "Pete Docter", "2009"),
    )
    received = roundtrip_response(
        Response(ResponseType.MOVIE_LIST_DETAILED, movies=movies)
    )
    assert received.movies == movies


def test_empty_list_roundtrip():
    received = roundtrip_response(Response(ResponseType.MOVIE_LIST))
    assert received == Response(ResponseType.MOVIE_LIST)


def test_ok_and_unknown_responses_roundtrip():
    assert roundtrip_response(Response(ResponseType.OK)) == Response(ResponseType.OK)
    assert roundtrip_response(Response(ResponseType.UNKNOWN)) == Response(
        ResponseType.UNKNOWN
    )


def test_empty_strings_survive_roundtrip():
    movie = Movie(8)
    received = roundtrip_response(Response(ResponseType.MOVIE, movie=movie))
    assert received.movie == Movie(8, "", "", "", "")


def test_several_packets_read_back_in_sequence():
    first = Request(RequestType.GET_MOVIE, movie_id=1)
    second = Request(RequestType.LIST_MOVIES_BY_GENRE, genre="Drama")
    stream = io.BytesIO(encode_request(first) + encode_request(second))
    assert read_request(stream) == first
    assert read_request(stream) == second


def test_reading_from_trickling_stream():
    movie = Movie(3, "Jaws", "Thriller", "Steven Spielberg", "1975")
    data = encode_response(Response(ResponseType.MOVIE, movie=movie))
    assert read_response(TrickleStream(data)).movie == movie


def test_empty_stream_raises_connection_closed():
    with pytest.raises(ConnectionClosed):
        read_request(io.BytesIO(b""))


def test_truncated_request_raises_connection_closed():
    data = encode_request(Request(RequestType.ADD_MOVIE, title="Alien"))
    with pytest.raises(ConnectionClosed):
        read_request(io.BytesIO(data[:-3]))


def test_truncated_response_raises_connection_closed():
    movies = (MovieSummary(1, "A"), MovieSummary(2, "B"))
    data = encode_response(Response(ResponseType.MOVIE_LIST, movies=movies))
    with pytest.raises(ConnectionClosed):
        read_response(io.BytesIO(data[:-1]))


def test_connection_closed_is_a_protocol_error():
    with pytest.raises(ProtocolError):
        read_response(io.BytesIO(b""))


def test_unknown_request_type_code_is_rejected():
    with pytest.raises(ProtocolError):
        read_request(io.BytesIO(b"\x08"))


def test_unknown_response_type_code_is_rejected():
    with pytest.raises(ProtocolError):
        read_response(io.BytesIO(b"\x06"))


def test_movie_id_out_of_range_is_rejected():
    with pytest.raises(ProtocolError):
        encode_request(Request(RequestType.GET_MOVIE, movie_id=1 << 32))
    with pytest.raises(ProtocolError):
        encode_request(Request(RequestType.REMOVE_MOVIE, movie_id=-1))


def test_movie_response_without_movie_is_rejected():
    with pytest.raises(ProtocolError):
        encode_response(Response(ResponseType.MOVIE))


def test_detailed_list_of_summaries_is_rejected():
    with pytest.raises(ProtocolError):
        encode_response(
            Response(ResponseType.MOVIE_LIST_DETAILED, movies=(MovieSummary(1, "A"),))
        )


def test_encoded_length_prefix_counts_bytes_not_characters():
    data = encode_request(Request(RequestType.LIST_MOVIES_BY_GENRE, genre="é"))
    assert data[1:5] == len("é".encode("utf-8")).to_bytes(4, "big")
    assert len(data) == 1 + 4 + len("é".encode("utf-8"))