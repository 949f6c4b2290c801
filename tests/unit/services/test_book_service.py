"""Tests for folders and books."""

from __future__ import annotations

import pytest

from marginalia.errors import ValidationError
from marginalia.providers.base import BookMetadata
from marginalia.services.books import UNKNOWN_AUTHOR, UNKNOWN_TITLE, normalize_folder_id

# ------------------------------------------------------------------
# Folders
# ------------------------------------------------------------------


@pytest.mark.parametrize("name, expected", [("Stoics", "Stoics"), ("  Philosophy ", "Philosophy"), ("   ", "Default"), (None, "Default")])
def test_folder_name_defaults(library, name, expected):
    assert library.folders.create("u1", name).name == expected


def test_folders_listed_newest_first_per_owner(library):
    first = library.folders.create("u1", "A")
    second = library.folders.create("u1", "B")
    library.folders.create("u2", "C")
    assert [f.id for f in library.folders.list_by_owner("u1")] == [second.id, first.id]


def test_foreign_folder_invisible(library):
    folder = library.folders.create("u1", "Mine")
    assert library.folders.get("u2", folder.id) is None
    assert library.folders.get("u1", folder.id).name == "Mine"


# ------------------------------------------------------------------
# Books
# ------------------------------------------------------------------


@pytest.mark.parametrize("raw, expected", [(None, "default"), ("", "default"), ("  ", "default"), ("default", "default"), (" f1 ", "f1")])
def test_normalize_folder_id(raw, expected):
    assert normalize_folder_id(raw) == expected


def test_create_book(library):
    book = library.books.create("u1", " Meditations ", "Marcus Aurelius", isbn="9780812968255")
    stored = library.books.get("u1", book.id)
    assert stored.title == "Meditations"
    assert stored.isbn == "9780812968255"
    assert stored.folder_id == "default"
    assert stored.cover_url is None


@pytest.mark.parametrize("title, author", [("", "A"), ("T", "  ")])
def test_create_book_requires_title_and_author(library, title, author):
    with pytest.raises(ValidationError):
        library.books.create("u1", title, author)


def test_foreign_book_invisible(library):
    book = library.books.create("u1", "T", "A")
    assert library.books.get("u2", book.id) is None


def test_list_by_folder(library):
    folder = library.folders.create("u1", "Stoics")
    in_folder = library.books.create("u1", "Meditations", "Marcus", folder_id=folder.id)
    loose = library.books.create("u1", "Deep Work", "Cal Newport")
    explicit_default = library.books.create("u1", "Atomic Habits", "James Clear", folder_id="default")

    assert [b.id for b in library.books.list_by_owner("u1", folder_id=folder.id)] == [in_folder.id]
    assert [b.id for b in library.books.list_by_owner("u1", folder_id="default")] == [
        explicit_default.id,
        loose.id,
    ]
    assert len(library.books.list_by_owner("u1")) == 3
    assert library.books.list_by_owner("u2") == []


def test_lookup_and_create(library, lookup):
    lookup.result = BookMetadata(title="Meditations", author="Marcus Aurelius", isbn="9780812968255")
    book = library.books.lookup_and_create("u1", isbn="9780812968255", folder_id="f1")
    assert book.title == "Meditations"
    assert book.folder_id == "f1"
    assert lookup.calls == [{"isbn": "9780812968255", "title": None, "author": None}]


def test_lookup_without_match_creates_nothing(library, lookup):
    assert library.books.lookup_and_create("u1", title="Nonexistent") is None
    assert library.books.list_by_owner("u1") == []


def test_lookup_requires_a_query(library, lookup):
    with pytest.raises(ValidationError):
        library.books.lookup_and_create("u1", isbn=" ", title=None)
    assert lookup.calls == []


def test_create_from_cover_uses_first_two_lines(library, ocr, lookup, blobs):
    ocr.text = "MEDITATIONS\n\nMarcus Aurelius\nA new translation"
    lookup.result = BookMetadata(title="Meditations", author="Marcus Aurelius")

    book = library.books.create_from_cover("u1", b"jpeg-bytes")

    assert lookup.calls == [{"isbn": None, "title": "MEDITATIONS Marcus Aurelius", "author": None}]
    assert book.title == "Meditations"
    path = blobs.verify(book.cover_url)
    assert path.startswith("covers/u1/")
    assert blobs.read(path) == (b"jpeg-bytes", "image/jpeg")


def test_create_from_cover_keeps_lookup_cover(library, ocr, lookup):
    ocr.text = "Deep Work"
    lookup.result = BookMetadata(title="Deep Work", author="Cal Newport", cover_url="https://img.test/c.jpg")
    assert library.books.create_from_cover("u1", b"jpeg").cover_url == "https://img.test/c.jpg"


def test_create_from_unreadable_cover(library, ocr, lookup):
    ocr.text = ""
    book = library.books.create_from_cover("u1", b"jpeg")
    assert (book.title, book.author) == (UNKNOWN_TITLE, UNKNOWN_AUTHOR)
    assert book.cover_url.startswith("https://blobs.test/covers/u1/")
    assert lookup.calls == []


def test_create_from_cover_without_match(library, ocr):
    ocr.text = "Some obscure title"
    book = library.books.create_from_cover("u1", b"jpeg")
    assert book.title == UNKNOWN_TITLE


def test_create_from_cover_requires_image(library):
    with pytest.raises(ValidationError):
        library.books.create_from_cover("u1", b"")
