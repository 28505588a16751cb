"""
Room slug generation for public-facing trade URLs.

Slugs are hashids of a random integer, encoded with a salt that is not shared
with any other identifier type, so a slug never reveals the internal trade id.
"""
import secrets

from hashids import Hashids

from traderoom.core.config import settings

# 40 random bits keeps slugs short while making guessing impractical
SLUG_ENTROPY_BITS = 40

_room_hasher = Hashids(
    salt=f"trade_room_{settings.secret_key}",
    min_length=settings.room_slug_min_length,
)


def generate_room_slug() -> str:
    """Generate a new random, URL-safe room slug."""
    return _room_hasher.encode(secrets.randbits(SLUG_ENTROPY_BITS))


def is_valid_room_slug(slug: str) -> bool:
    """Check that a slug was produced by this generator. Returns False if invalid."""
    if not slug:
        return False
    try:
        return bool(_room_hasher.decode(slug))
    except ValueError:
        return False
