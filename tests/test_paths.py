"""Tests for object key conventions."""

import pytest

from mediaupload.core.exceptions import InvalidRequestError
from mediaupload.uploads.paths import (
    chunk_key,
    chunk_keys,
    chunk_prefix,
    content_type_for_category,
    is_session_key,
    parse_chunk_name,
    validate_file_id,
    validate_object_key,
)


def test_chunk_key_convention():
    assert chunk_prefix("abc123") == "temp/chunks/abc123"
    assert chunk_key("abc123", 0) == "temp/chunks/abc123/chunk_0"
    assert chunk_keys("abc123", 3) == [
        "temp/chunks/abc123/chunk_0",
        "temp/chunks/abc123/chunk_1",
        "temp/chunks/abc123/chunk_2",
    ]


def test_chunk_key_rejects_negative_index():
    with pytest.raises(ValueError):
        chunk_key("abc123", -1)


def test_parse_chunk_name():
    assert parse_chunk_name("chunk_0") == 0
    assert parse_chunk_name("chunk_12") == 12
    assert parse_chunk_name("temp/chunks/abc123/chunk_7") == 7
    assert parse_chunk_name("chunk_") is None
    assert parse_chunk_name("chunk_1.tmp") is None
    assert parse_chunk_name("notes.txt") is None


@pytest.mark.parametrize(
    "category,expected",
    [
        ("image", "image/jpeg"),
        ("IMAGE", "image/jpeg"),
        ("video", "video/mp4"),
        ("document", "application/octet-stream"),
        ("audio", "application/octet-stream"),
        (None, "application/octet-stream"),
        ("", "application/octet-stream"),
    ],
)
def test_content_type_for_category(category, expected):
    assert content_type_for_category(category) == expected


def test_validate_file_id():
    assert validate_file_id("  abc123 ") == "abc123"
    for bad in ["", "   ", "a/b", "..", ".", "a\\b"]:
        with pytest.raises(InvalidRequestError):
            validate_file_id(bad)


def test_validate_object_key():
    assert validate_object_key("images/2024/photo.jpg") == "images/2024/photo.jpg"
    for bad in ["", "/abs/path", "a//b", "a/../b", "a/./b", "trailing/", "a\\b"]:
        with pytest.raises(InvalidRequestError):
            validate_object_key(bad)


def test_is_session_key():
    assert is_session_key("abc123", "temp/chunks/abc123/chunk_0")
    assert is_session_key("abc123", "temp/chunks/abc123")
    assert not is_session_key("abc123", "temp/chunks/abc1234/chunk_0")
    assert not is_session_key("abc123", "images/abc123.jpg")
