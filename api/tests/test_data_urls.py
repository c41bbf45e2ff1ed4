"""Tests for data URL decoding."""

from __future__ import annotations

import base64

import pytest

from folio.data_urls import extension_from_mime, parse_data_url
from folio.errors import InvalidDataUrlError

from conftest import PNG_DATA_URL


def test_parse_png():
    image = parse_data_url(PNG_DATA_URL)

    assert image.mime_type == "image/png"
    assert image.content.startswith(b"\x89PNG")
    assert image.extension == "png"
    assert image.size_mb == 1


def test_size_rounds_up_to_whole_megabytes():
    payload = base64.b64encode(b"\0" * (1024 * 1024 + 1)).decode()

    image = parse_data_url(f"data:image/jpeg;base64,{payload}")

    assert image.size_mb == 2


def test_exact_megabyte_is_not_rounded_up():
    payload = base64.b64encode(b"\0" * (1024 * 1024)).decode()

    assert parse_data_url(f"data:image/jpeg;base64,{payload}").size_mb == 1


@pytest.mark.parametrize(
    "mime, expected",
    [
        ("image/png", "png"),
        ("image/jpeg", "jpeg"),
        ("image/svg+xml", "svg"),
        ("image/", "bin"),
        ("", "bin"),
    ],
)
def test_extension_from_mime(mime, expected):
    assert extension_from_mime(mime) == expected


@pytest.mark.parametrize(
    "value",
    [
        "",
        "not a data url",
        "data:image/png,plain-not-base64",
        "data:image/png;base64,@@@not-base64@@@",
    ],
)
def test_invalid_data_urls_are_rejected(value):
    with pytest.raises(InvalidDataUrlError):
        parse_data_url(value)
