"""Tests for room slug generation."""
from traderoom.core.config import settings
from traderoom.core.slugs import generate_room_slug, is_valid_room_slug


def test_slug_is_url_safe():
    slug = generate_room_slug()
    assert slug.isalnum()
    assert len(slug) >= settings.room_slug_min_length


def test_slugs_differ():
    slugs = {generate_room_slug() for _ in range(50)}
    assert len(slugs) == 50


def test_generated_slug_is_valid():
    assert is_valid_room_slug(generate_room_slug())


def test_foreign_slug_is_invalid():
    assert not is_valid_room_slug("not-a-room")
    assert not is_valid_room_slug("")
