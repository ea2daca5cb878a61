"""
Unit tests for business logic (services layer).
Tests service functions with the document store mocked out.
"""

from contextlib import ExitStack, contextmanager

import pytest
from unittest.mock import AsyncMock, patch
from fastapi import HTTPException

from users_service import services
from users_service.crud import StorageError
from users_service.schemas import UserIn


@contextmanager
def mock_store(**methods):
    """Patch methods of the users collection with AsyncMocks and yield them by name."""
    mocks = {name: AsyncMock(**spec) for name, spec in methods.items()}
    with ExitStack() as stack:
        for name, mock in mocks.items():
            stack.enter_context(patch.object(services.users_collection, name, mock))
        yield mocks


@pytest.mark.asyncio
class TestGetUser:
    """Test get_user service function."""

    async def test_get_user_success(self, carl):
        with mock_store(get={"return_value": carl}):
            result = await services.get_user("abc123")

        assert result == carl

    async def test_get_user_normalizes_legacy_record(self, carl):
        del carl["github"]
        del carl["displayName"]
        with mock_store(get={"return_value": carl}):
            result = await services.get_user("abc123")

        assert result["displayName"] == "Carl Sagan"
        assert "github" not in result

    async def test_get_user_not_found(self):
        with mock_store(get={"return_value": None}):
            with pytest.raises(HTTPException) as exc_info:
                await services.get_user("abc123")

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail["error"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
class TestListUsers:
    """Test list_users service function."""

    async def test_list_users_success(self, carl, galileo):
        with mock_store(get_all={"return_value": [carl, galileo]}):
            result = await services.list_users()

        assert result == [carl, galileo]

    async def test_list_users_empty(self):
        with mock_store(get_all={"return_value": []}):
            with pytest.raises(HTTPException) as exc_info:
                await services.list_users()

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail["error"] == "NO_USERS"


@pytest.mark.asyncio
class TestCreateUser:
    """Test create_user service function."""

    async def test_create_user_success(self, carl):
        body = UserIn.model_validate(carl)
        with mock_store(exists={"return_value": False}, create={}) as mocks:
            result = await services.create_user("abc123", body)

        assert result.msg == "Added user with id: abc123"
        mocks["create"].assert_awaited_once_with("abc123", carl)

    async def test_create_user_applies_defaults(self, carl):
        del carl["displayName"], carl["isAdmin"], carl["isFlagged"], carl["github"]
        body = UserIn.model_validate(carl)
        with mock_store(exists={"return_value": False}, create={}) as mocks:
            await services.create_user("abc123", body)

        stored = mocks["create"].await_args.args[1]
        assert stored["displayName"] == "Carl Sagan"
        assert stored["isAdmin"] is False
        assert stored["isFlagged"] is False
        assert "github" not in stored

    async def test_create_user_already_exists(self, carl):
        body = UserIn.model_validate(carl)
        with mock_store(exists={"return_value": True}, create={}) as mocks:
            with pytest.raises(HTTPException) as exc_info:
                await services.create_user("abc123", body)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["error"] == "USER_EXISTS"
        mocks["create"].assert_not_awaited()

    async def test_create_user_loses_race(self, carl):
        """A concurrent insert that lands between the check and the write is a conflict."""
        body = UserIn.model_validate(carl)
        with mock_store(
            exists={"return_value": False},
            create={"side_effect": ValueError("duplicate document")},
        ) as mocks:
            with pytest.raises(HTTPException) as exc_info:
                await services.create_user("abc123", body)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["error"] == "USER_EXISTS"
        mocks["create"].assert_awaited_once()

    async def test_create_user_storage_error_propagates(self, carl):
        body = UserIn.model_validate(carl)
        with mock_store(exists={"side_effect": StorageError("boom")}):
            with pytest.raises(StorageError):
                await services.create_user("abc123", body)


@pytest.mark.asyncio
class TestUpdateUser:
    """Test update_user service function."""

    async def test_update_user_success(self, carl):
        carl["displayName"] = "Dr. Carl Sagan"
        body = UserIn.model_validate(carl)
        with mock_store(exists={"return_value": True}, update={"return_value": True}) as mocks:
            result = await services.update_user("abc123", body)

        assert result.msg == "Updated user abc123"
        mocks["update"].assert_awaited_once_with("abc123", carl)

    async def test_update_user_not_found(self, carl):
        body = UserIn.model_validate(carl)
        with mock_store(exists={"return_value": False}, update={}) as mocks:
            with pytest.raises(HTTPException) as exc_info:
                await services.update_user("abc123", body)

        assert exc_info.value.status_code == 404
        mocks["update"].assert_not_awaited()

    async def test_update_user_deleted_concurrently(self, carl):
        body = UserIn.model_validate(carl)
        with mock_store(exists={"return_value": True}, update={"return_value": False}):
            with pytest.raises(HTTPException) as exc_info:
                await services.update_user("abc123", body)

        assert exc_info.value.status_code == 404


@pytest.mark.asyncio
class TestDeleteUser:
    """Test delete_user service function."""

    async def test_delete_user_success(self):
        with mock_store(exists={"return_value": True}, delete={"return_value": True}) as mocks:
            result = await services.delete_user("abc123")

        assert result.msg == "User abc123 was removed."
        mocks["delete"].assert_awaited_once_with("abc123")

    async def test_delete_user_not_found(self):
        with mock_store(exists={"return_value": False}, delete={}) as mocks:
            with pytest.raises(HTTPException) as exc_info:
                await services.delete_user("abc123")

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail["error"] == "USER_NOT_FOUND"
        mocks["delete"].assert_not_awaited()
