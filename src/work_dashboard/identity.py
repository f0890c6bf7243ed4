"""Identity resolution for per-user data isolation."""

from collections.abc import Callable
from pathlib import Path
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Reserved key for anonymous use; never a valid email
GUEST_USER_ID = "guest"


class UserProfile(BaseModel):
    """Authenticated user as reported by the outer login flow."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    email: str
    icon_url: str = ""


IdentityResolver = Callable[[], UserProfile | None]


def normalize_identity_key(email: str | None) -> str:
    """Map an email to its identity key (trimmed, lower-cased), guest if empty."""
    normalized = (email or "").strip().lower()
    return normalized or GUEST_USER_ID


def resolve_identity_key(user: UserProfile | None) -> str:
    """Resolve the identity key for the current user, or the guest key."""
    if user is None:
        return GUEST_USER_ID
    return normalize_identity_key(user.email)


def user_data_dir(users_dir: Path, identity_key: str) -> Path:
    """Filesystem-safe per-identity directory (``user@example.com`` -> ``user%40example.com``)."""
    return users_dir / quote(identity_key, safe="")
