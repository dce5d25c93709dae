import threading

import pytest

from cabbage.catalog import Catalog, CatalogError, append_genre, genre_exists
from cabbage.protocol import Movie, MovieSummary


class RecordingJournal:
    def __init__(self):
        self.calls = []

    def add_movie(self, movie):
        self.calls.append(("add", movie))

    def add_genre(self, movie_id, genre):
        self.calls.append(("genre", movie_id, genre))

    def remove_movie(self, movie_id):
        self.calls.append(("remove", movie_id))


@pytest.mark.parametrize(
    "genres, genre, expected",
    [
        ("Action,Comedy", "Comedy", True),
        ("Action,Comedy", "Action", True),
        ("Action,Comedy", "Act", False),
        ("Action,Comedy", "medy", False),
        ("Action", "", False),
        ("", "", True),
        (None, "Action", False),
        ("Action", None, False),
    ],
)
def test_genre_exists(genres, genre, expected):
    assert genre_exists(genres, genre) is expected


def test_append_genre():
    assert append_genre("", "Drama") == "Drama"
    assert append_genre(None, "Drama") == "Drama"
    assert append_genre("Action", "Drama") == "Action,Drama"


def test_add_assigns_sequential_ids_and_journals():
    journal = RecordingJournal()
    catalog = Catalog(capacity=4, journal=journal)
    first = catalog.add_movie("Alien", "Horror", "Scott", "1979")
    second = catalog.add_movie("Heat", "Crime", "Mann", "1995")
    assert first == Movie(1, "Alien", "Horror", "Scott", "1979")
    assert second.id == first.id + 1
    assert len(catalog) == 2
    assert journal.calls == [("add", first), ("add", second)]


def test_capacity_reached():
    catalog = Catalog(capacity=1)
    catalog.add_movie("A", "", "", "")
    with pytest.raises(CatalogError, match="Maximum number of movies reached"):
        catalog.add_movie("B", "", "", "")
    assert len(catalog) == 1


def test_freed_slot_is_reused_first():
    catalog = Catalog(capacity=3)
    a = catalog.add_movie("A", "", "", "")
    b = catalog.add_movie("B", "", "", "")
    c = catalog.add_movie("C", "", "", "")
    catalog.remove_movie(a.id)
    d = catalog.add_movie("D", "", "", "")
    assert catalog.list_movies() == [
        MovieSummary(d.id, "D"),
        MovieSummary(b.id, "B"),
        MovieSummary(c.id, "C"),
    ]


def test_add_genre_appends_and_journals():
    journal = RecordingJournal()
    catalog = Catalog(capacity=2, journal=journal)
    movie = catalog.add_movie("Alien", "Horror", "Scott", "1979")
    updated = catalog.add_genre(movie.id, "SciFi")
    assert updated.genres == "Horror,SciFi"
    assert catalog.get_movie(movie.id).genres == "Horror,SciFi"
    assert journal.calls[-1] == ("genre", movie.id, "SciFi")


def test_add_genre_errors():
    catalog = Catalog(capacity=2)
    movie = catalog.add_movie("Alien", "Horror", "Scott", "1979")
    with pytest.raises(CatalogError, match="Genre cannot contain ','"):
        catalog.add_genre(movie.id, "a,b")
    with pytest.raises(CatalogError, match="Genre already exists for this movie"):
        catalog.add_genre(movie.id, "Horror")
    with pytest.raises(CatalogError, match="Movie ID not found"):
        catalog.add_genre(movie.id + 100, "Drama")
    assert catalog.get_movie(movie.id).genres == "Horror"


def test_add_genre_to_empty_genres():
    catalog = Catalog(capacity=1)
    movie = catalog.add_movie("X", "", "Y", "2000")
    assert catalog.add_genre(movie.id, "Drama").genres == "Drama"


def test_remove_and_get():
    journal = RecordingJournal()
    catalog = Catalog(capacity=2, journal=journal)
    movie = catalog.add_movie("Alien", "Horror", "Scott", "1979")
    assert catalog.remove_movie(movie.id) == movie
    assert len(catalog) == 0
    assert journal.calls[-1] == ("remove", movie.id)
    with pytest.raises(CatalogError, match="Movie ID not found for removal"):
        catalog.remove_movie(movie.id)
    with pytest.raises(CatalogError, match="Movie ID not found"):
        catalog.get_movie(movie.id)


def test_list_detailed_matches_added():
    catalog = Catalog(capacity=3)
    added = [catalog.add_movie(t, "G", "D", "2001") for t in ("A", "B")]
    assert catalog.list_detailed() == added


def test_list_by_genre():
    catalog = Catalog(capacity=3)
    a = catalog.add_movie("A", "Action,Comedy", "", "")
    catalog.add_movie("B", "Drama", "", "")
    c = catalog.add_movie("C", "Comedy", "", "")
    assert catalog.list_by_genre("Comedy") == [
        MovieSummary(a.id, "A"),
        MovieSummary(c.id, "C"),
    ]
    assert catalog.list_by_genre("Com") == []


def test_list_by_genre_validation():
    catalog = Catalog(capacity=2)
    assert catalog.list_by_genre("a,b") == []
    catalog.add_movie("A", "Action", "", "")
    with pytest.raises(CatalogError, match="Genre cannot be empty"):
        catalog.list_by_genre("")
    with pytest.raises(CatalogError, match="Genre cannot contain ','"):
        catalog.list_by_genre("a,b")


def test_restored_slots_and_next_id():
    existing = Movie(7, "Old", "Drama", "Someone", "1950")
    catalog = Catalog(capacity=3, slots=[None, existing], next_id=8)
    assert len(catalog) == 1
    new = catalog.add_movie("New", "", "", "")
    assert new.id == 8
    assert catalog.list_movies() == [MovieSummary(8, "New"), MovieSummary(7, "Old")]


def test_too_many_slots_rejected():
    with pytest.raises(ValueError):
        Catalog(capacity=1, slots=[None, None])


def test_concurrent_adds_get_unique_ids():
    catalog = Catalog(capacity=200)
    results = []
    lock = threading.Lock()

    def worker():
        for _ in range(25):
            movie = catalog.add_movie("T", "", "", "")
            with lock:
                results.append(movie.id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(catalog) == 200
    assert len(set(results)) == 200
    assert sorted(m.id for m in catalog.list_movies()) == sorted(results)