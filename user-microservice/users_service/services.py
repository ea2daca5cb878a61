"""Business logic for user operations.

Each operation does at most one existence check followed by at most one
write against the users collection. Validation has already happened by the
time these run; storage failures propagate as ``StorageError``.
"""

from fastapi import HTTPException

from .schemas import UserIn, MessageResponse, ErrorCode
from .crud import DocumentCollection
from .entities import User
from .config import settings
from .logger import logger

users_collection = DocumentCollection(settings.USERS_COLLECTION)

# ==================== Helper Functions ====================


def _user_not_found(user_id: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            "error": ErrorCode.USER_NOT_FOUND,
            "message": message,
            "details": {"user_id": user_id}
        }
    )


def _user_exists(user_id: str) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={
            "error": ErrorCode.USER_EXISTS,
            "message": f"User with id {user_id} already exists",
            "details": {"user_id": user_id}
        }
    )

# ==================== User Operations ====================


async def get_user(user_id: str) -> dict:
    """Return the stored record for user_id."""
    logger.debug(f"Fetching user: id={user_id}")

    record = await users_collection.get(user_id)
    if record is None:
        logger.warning(f"User not found: id={user_id}")
        raise _user_not_found(user_id, f"User {user_id} not found")

    return User(record).to_object()


async def list_users() -> list[dict]:
    """Return every stored user record."""
    records = await users_collection.get_all()
    if not records:
        logger.info("No users found")
        raise HTTPException(
            status_code=404,
            detail={
                "error": ErrorCode.NO_USERS,
                "message": "No users found",
                "details": {}
            }
        )

    logger.debug(f"Listing {len(records)} users")
    return [User(record).to_object() for record in records]


async def create_user(user_id: str, data: UserIn) -> MessageResponse:
    """Store a new user at user_id; rejected if that id is already taken."""
    logger.info(f"Creating user: id={user_id}")

    if await users_collection.exists(user_id):
        logger.warning(f"Create rejected - user already exists: id={user_id}")
        raise _user_exists(user_id)

    user = User(data.to_record())
    if user.id != user_id:
        logger.debug(f"Creating user {user_id} whose email hashes to {user.id}")

    try:
        await users_collection.create(user_id, user.to_object())
    except ValueError as e:
        # Lost a race with a concurrent create for the same id
        logger.warning(f"Create rejected - concurrent insert won: id={user_id}")
        raise _user_exists(user_id) from e

    logger.info(f"User created successfully: id={user_id}")
    return MessageResponse(msg=f"Added user with id: {user_id}")


async def update_user(user_id: str, data: UserIn) -> MessageResponse:
    """Merge a freshly normalized record into the existing user."""
    logger.info(f"Updating user: id={user_id}")

    if not await users_collection.exists(user_id):
        logger.warning(f"Cannot update - user not found: id={user_id}")
        raise _user_not_found(user_id, f"User {user_id} not found")

    user = User(data.to_record())
    if not await users_collection.update(user_id, user.to_object()):
        # Deleted between the check and the write
        logger.warning(f"Cannot update - user disappeared: id={user_id}")
        raise _user_not_found(user_id, f"User {user_id} not found")

    logger.info(f"User updated successfully: id={user_id}")
    return MessageResponse(msg=f"Updated user {user_id}")


async def delete_user(user_id: str) -> MessageResponse:
    """Remove the user stored at user_id."""
    logger.info(f"Deleting user: id={user_id}")

    if not await users_collection.exists(user_id):
        logger.warning(f"Cannot delete - user not found: id={user_id}")
        raise _user_not_found(user_id, f"User {user_id} not found")

    if not await users_collection.delete(user_id):
        logger.warning(f"Cannot delete - user disappeared: id={user_id}")
        raise _user_not_found(user_id, f"User {user_id} not found")

    logger.info(f"User deleted successfully: id={user_id}")
    return MessageResponse(msg=f"User {user_id} was removed.")
