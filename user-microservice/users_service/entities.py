"""User entity: normalizes user data into the record we store and return."""

from typing import Any, Mapping

from .utils import hash_email


def generate_display_name(data: Mapping[str, Any]) -> str:
    """Default display name when none is given."""
    return f"{data.get('firstName')} {data.get('lastName')}"


class User:
    """In-memory user built from a (validated) body or a stored record.

    The entity applies defaults but performs no cross-field checks; that is
    the job of ``schemas.UserIn``.
    """

    def __init__(self, data: Mapping[str, Any]):
        self.email = data.get("email")
        self.first_name = data.get("firstName")
        self.last_name = data.get("lastName")
        self.display_name = data.get("displayName") or generate_display_name(data)
        self.is_admin = data.get("isAdmin") is True
        self.is_flagged = data.get("isFlagged") is True
        self.feeds = tuple(data.get("feeds") or ())
        # Legacy users have no GitHub info
        github = data.get("github")
        self.github = dict(github) if github else None

    @property
    def id(self) -> str:
        """Document id: the hash of the user's email."""
        return hash_email(self.email)

    def to_object(self) -> dict[str, Any]:
        """Flat, JSON-compatible record; ``github`` only when populated."""
        record = {
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "displayName": self.display_name,
            "isAdmin": self.is_admin,
            "isFlagged": self.is_flagged,
            "feeds": list(self.feeds),
        }
        if self.github:
            record["github"] = dict(self.github)
        return record

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return NotImplemented
        return self.to_object() == other.to_object()

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r})"
