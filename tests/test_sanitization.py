"""
Tests for input sanitization helpers.
"""

import pytest

from filehub.exceptions import ValidationError
from filehub.sanitization import (
    get_file_extension,
    sanitize_description,
    sanitize_filename,
    sanitize_name,
    sanitize_search_query,
    sanitize_text_content,
    validate_avatar_url,
)


class TestFilename:

    def test_trims_whitespace(self):
        assert sanitize_filename("  Quarterly report.pdf ") == "Quarterly report.pdf"

    def test_strips_control_characters(self):
        assert sanitize_filename("re\x07port.txt") == "report.txt"

    @pytest.mark.parametrize("filename", ["", "   ", "../../etc/passwd", "a\\b.txt", "a\x00b", "...", "x" * 256])
    def test_rejects_bad_names(self, filename):
        with pytest.raises(ValidationError):
            sanitize_filename(filename)


@pytest.mark.parametrize("filename,ext", [
    ("Photo.JPG", "jpg"),
    ("archive.tar.gz", "gz"),
    ("Makefile", "bin"),
    ("weird.ex-t", "bin"),
    ("long." + "a" * 17, "bin"),
    ("", "bin"),
])
def test_get_file_extension(filename, ext):
    assert get_file_extension(filename) == ext


class TestText:

    def test_normalizes_line_endings(self):
        assert sanitize_text_content(" one\r\ntwo\rthree ", 100) == "one\ntwo\nthree"

    def test_length_limit_names_field(self):
        with pytest.raises(ValidationError, match="Comment too long"):
            sanitize_text_content("x" * 11, 10, "Comment")

    def test_rejects_null_bytes(self):
        with pytest.raises(ValidationError):
            sanitize_text_content("a\x00b", 10)

    def test_blank_description_is_none(self):
        assert sanitize_description("   ") is None
        assert sanitize_description(None) is None
        assert sanitize_description(" Notes ") == "Notes"

    def test_name_rejects_newlines(self):
        with pytest.raises(ValidationError, match="Title contains invalid characters"):
            sanitize_name("two\nlines", "Title")


class TestSearchQuery:

    def test_blank_is_none(self):
        assert sanitize_search_query(None) is None
        assert sanitize_search_query("   ") is None

    def test_escapes_like_wildcards(self):
        assert sanitize_search_query("50%_off\\") == "50\\%\\_off\\\\"

    def test_too_long(self):
        with pytest.raises(ValidationError):
            sanitize_search_query("q" * 201)


class TestAvatarUrl:

    def test_accepts_https(self):
        assert validate_avatar_url(" https://cdn.example.com/a.png ") == "https://cdn.example.com/a.png"

    def test_blank_clears(self):
        assert validate_avatar_url("") is None

    @pytest.mark.parametrize("url", ["javascript:alert(1)", "ftp://example.com/a.png", "https://"])
    def test_rejects(self, url):
        with pytest.raises(ValidationError):
            validate_avatar_url(url)
