"""Pydantic schemas for request validation and response serialization."""

from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    StrictBool,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .entities import generate_display_name


# Path parameter format for document ids
HEX_ID_PATTERN = r"^[0-9a-fA-F]+$"
# Matches the width of documents.id
MAX_ID_LENGTH = 128


# ==================== Error Schemas ====================

class ErrorResponse(BaseModel):
    """Standardized error response with code and message."""
    error: str
    message: str
    details: dict | None = None


class ErrorCode:
    """Centralized error codes for API responses."""
    USER_NOT_FOUND = "USER_NOT_FOUND"
    NO_USERS = "NO_USERS"
    USER_EXISTS = "USER_EXISTS"
    INVALID_INPUT = "INVALID_INPUT"
    STORAGE_ERROR = "STORAGE_ERROR"


# ==================== Field Types ====================

_url_adapter = TypeAdapter(AnyUrl)
_email_adapter = TypeAdapter(EmailStr)


def _check_uri(value: str) -> str:
    """Accept absolute URIs, keeping the caller's exact spelling."""
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid uri") from None
    return value


def _check_email(value: str) -> str:
    """Accept well-formed emails without rewriting them (the id hashes the raw string)."""
    try:
        _email_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid email") from None
    return value


Uri = Annotated[str, AfterValidator(_check_uri)]
Email = Annotated[str, AfterValidator(_check_email)]
NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


def _parse_bool_string(value: Any) -> Any:
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


# Real booleans, or the strings "true"/"false" in any case. 1, 0, "yes", "on" are rejected.
FlexibleBool = Annotated[StrictBool, BeforeValidator(_parse_bool_string)]


# ==================== User Schemas ====================

class GithubInfo(BaseModel):
    """GitHub account details; username and avatarUrl go together."""

    model_config = ConfigDict(alias_generator=to_camel, extra="forbid", frozen=True)

    username: NonEmptyStr | None = None
    avatar_url: Uri | None = None

    @model_validator(mode="after")
    def username_and_avatar_together(self) -> "GithubInfo":
        if (self.username is None) != (self.avatar_url is None):
            raise ValueError("github.username and github.avatarUrl must be provided together")
        return self

    @property
    def is_empty(self) -> bool:
        return self.username is None and self.avatar_url is None


class UserIn(BaseModel):
    """Request body for creating or updating a user.

    Built once at import and shared by every request; instances are frozen.
    Unknown keys are rejected.
    """

    model_config = ConfigDict(alias_generator=to_camel, extra="forbid", frozen=True)

    first_name: NonEmptyStr
    last_name: NonEmptyStr
    email: Email
    display_name: NonEmptyStr
    is_admin: FlexibleBool = False
    is_flagged: FlexibleBool = False
    feeds: list[Uri]
    github: GithubInfo | None = None

    @model_validator(mode="before")
    @classmethod
    def default_display_name(cls, data: Any) -> Any:
        """Synthesize displayName from first and last name when it is missing."""
        # A bad or missing name still fails on its own field, so only that field is reported.
        if isinstance(data, dict) and "displayName" not in data:
            return {**data, "displayName": generate_display_name(data)}
        return data

    @field_validator("github")
    @classmethod
    def drop_empty_github(cls, v: GithubInfo | None) -> GithubInfo | None:
        if v is not None and v.is_empty:
            return None
        return v

    def to_record(self) -> dict[str, Any]:
        """camelCase dict ready for ``entities.User``."""
        return self.model_dump(by_alias=True, exclude_none=True)


class MessageResponse(BaseModel):
    """Confirmation returned by write operations."""
    msg: str
