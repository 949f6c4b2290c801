"""Tests for the Google Books metadata lookup."""

from __future__ import annotations

import io
import json
import urllib.error
import urllib.parse
from unittest.mock import patch

import pytest

from marginalia.errors import CollaboratorError
from marginalia.providers.books_api import GoogleBooksLookup, volume_to_metadata

VOLUME = {
    "title": "Meditations",
    "authors": ["Marcus Aurelius", "Gregory Hays"],
    "industryIdentifiers": [
        {"type": "OTHER", "identifier": "X"},
        {"type": "ISBN_13", "identifier": "9780812968255"},
    ],
    "imageLinks": {"thumbnail": "http://books.google.com/cover.jpg"},
}


def _response(payload: dict) -> io.BytesIO:
    return io.BytesIO(json.dumps(payload).encode("utf-8"))


def _query_of(mock_urlopen) -> dict:
    request = mock_urlopen.call_args.args[0]
    return urllib.parse.parse_qs(urllib.parse.urlsplit(request.full_url).query)


def test_volume_to_metadata():
    meta = volume_to_metadata(VOLUME)
    assert meta.title == "Meditations"
    assert meta.author == "Marcus Aurelius, Gregory Hays"
    assert meta.isbn == "9780812968255"
    assert meta.cover_url == "https://books.google.com/cover.jpg"


def test_volume_to_metadata_fallbacks():
    meta = volume_to_metadata({})
    assert meta.title == "Unknown"
    assert meta.author == "Unknown"
    assert meta.isbn is None
    assert meta.cover_url is None


def test_lookup_by_isbn_takes_precedence():
    with patch("urllib.request.urlopen", return_value=_response({"items": [{"volumeInfo": VOLUME}]})) as mock:
        meta = GoogleBooksLookup().lookup(isbn=" 9780812968255 ", title="ignored")
    assert meta.title == "Meditations"
    assert _query_of(mock)["q"] == ["isbn:9780812968255"]


def test_lookup_by_title_and_author():
    with patch("urllib.request.urlopen", return_value=_response({"items": [{"volumeInfo": VOLUME}]})) as mock:
        GoogleBooksLookup().lookup(title="Meditations", author="Marcus Aurelius")
    query = _query_of(mock)
    assert query["q"] == ["Meditations Marcus Aurelius"]
    assert query["maxResults"] == ["1"]


def test_lookup_no_items_returns_none():
    with patch("urllib.request.urlopen", return_value=_response({"totalItems": 0})):
        assert GoogleBooksLookup().lookup(isbn="0000") is None


def test_lookup_nothing_to_search_skips_request():
    with patch("urllib.request.urlopen") as mock:
        assert GoogleBooksLookup().lookup() is None
    mock.assert_not_called()


def test_lookup_http_error_wrapped():
    with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("offline")):
        with pytest.raises(CollaboratorError, match="offline"):
            GoogleBooksLookup().lookup(isbn="123")


def test_lookup_bad_json_wrapped():
    with patch("urllib.request.urlopen", return_value=io.BytesIO(b"<html>")):
        with pytest.raises(CollaboratorError):
            GoogleBooksLookup().lookup(isbn="123")
