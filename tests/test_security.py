"""
Tests for slugs and redaction helpers.
"""

import pytest

from climage.core.security import redact_api_key, redact_url, slugify, summarize_data_uri


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Make image of kitten", "make-image-of-kitten"),
        ("  A cat's \"best\" day!  ", "a-cats-best-day"),
        ("Ünïcode & symbols *** here", "n-code-symbols-here"),
        ("---", "image"),
        ("", "image"),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_slugify_is_idempotent():
    for text in ["Make image of kitten", "A/B\\C  d", "x" * 200, "'quoted' words", "!!!"]:
        once = slugify(text)
        assert slugify(once) == once


def test_slugify_truncates_without_trailing_hyphen():
    slug = slugify("word " * 40)
    assert len(slug) <= 60
    assert not slug.endswith("-")


def test_slugify_output_alphabet():
    slug = slugify("Hello, World! 2026 -- Édition spéciale")
    assert set(slug) <= set("abcdefghijklmnopqrstuvwxyz0123456789-")
    assert "--" not in slug


def test_redact_url_strips_query_and_fragment():
    url = "https://cdn.example.com/out/a.png?X-Amz-Signature=secret&x=1#frag"
    assert redact_url(url) == "https://cdn.example.com/out/a.png"


def test_redact_url_leaves_non_urls_alone():
    assert redact_url("not a url") == "not a url"


def test_redact_api_key():
    text = "Authorization: Bearer sk-abcdef1234567890 and ?key=AIzaSecret&alt=media"
    redacted = redact_api_key(text)
    assert "sk-abcdef1234567890" not in redacted
    assert "AIzaSecret" not in redacted
    assert "alt=media" in redacted


def test_summarize_data_uri():
    uri = "data:image/png;base64," + "A" * 100
    assert summarize_data_uri(uri) == f"data:...{len(uri)} chars"
    assert summarize_data_uri("https://example.com/a.png") == "https://example.com/a.png"
