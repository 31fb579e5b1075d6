"""Tests for the verification link endpoint.

The in-memory store and outbox transport stand in for the database and
Resend; UserRepository.get_by_id is patched to return the test user.
"""

import uuid
from collections.abc import Iterator
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from feedback.core.actions import ACTION_TEMPLATES, ActionType
from feedback.core.errors import TransportError
from feedback.repositories.user_repository import UserRepository
from tests.conftest import TEST_HOST, TEST_USER_EMAIL, TEST_USER_ID

_URL = "/api/v1/verification-links"


@pytest.fixture
def user_lookup(test_user) -> Iterator[AsyncMock]:
    """Patch UserRepository.get_by_id to return the test user."""
    lookup = AsyncMock(return_value=test_user)
    with patch.object(UserRepository, "get_by_id", lookup):
        yield lookup


class TestRequestVerificationLink:
    """Tests for POST /api/v1/verification-links."""

    @pytest.mark.asyncio
    async def test_strict_issue_sends_email(
        self, client, user_lookup, memory_store, outbox_transport
    ):
        """A first request stores a token and emails its link."""
        response = await client.post(_URL, json={"action_type": "verify"})

        assert response.status_code == 200
        assert response.json() == {"data": {"action_type": "verify", "sent": True}}
        user_lookup.assert_awaited_once()

        record = await memory_store.find(TEST_USER_ID, ActionType.VERIFY)
        assert record is not None
        assert len(outbox_transport.outbox) == 1
        sent = outbox_transport.outbox[0]
        assert sent.to == TEST_USER_EMAIL
        assert sent.subject == ACTION_TEMPLATES[ActionType.VERIFY].subject
        assert (
            f"http://{TEST_HOST}/verify?id={TEST_USER_ID}&t={record.token}" in sent.text
        )

    @pytest.mark.asyncio
    async def test_response_never_contains_token(
        self, client, user_lookup, memory_store
    ):
        """The link travels by email only."""
        response = await client.post(_URL, json={"action_type": "verify"})

        record = await memory_store.find(TEST_USER_ID, ActionType.VERIFY)
        assert record.token not in response.text

    @pytest.mark.asyncio
    async def test_second_strict_request_conflicts(
        self, client, user_lookup, memory_store, outbox_transport
    ):
        """Strict issuance refuses while a link is outstanding."""
        await client.post(_URL, json={"action_type": "verify"})
        first = await memory_store.find(TEST_USER_ID, ActionType.VERIFY)

        response = await client.post(_URL, json={"action_type": "verify"})

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "TOKEN_CONFLICT"
        assert (await memory_store.find(TEST_USER_ID, ActionType.VERIFY)) == first
        assert len(outbox_transport.outbox) == 1

    @pytest.mark.asyncio
    async def test_replace_supersedes_token(
        self, client, user_lookup, memory_store, outbox_transport
    ):
        """replace=true issues a new token and sends a second email."""
        await client.post(_URL, json={"action_type": "reset-password"})
        first = await memory_store.find(TEST_USER_ID, ActionType.RESET_PASSWORD)

        response = await client.post(
            _URL, json={"action_type": "reset-password", "replace": True}
        )

        assert response.status_code == 200
        second = await memory_store.find(TEST_USER_ID, ActionType.RESET_PASSWORD)
        assert second.token != first.token
        assert len(outbox_transport.outbox) == 2
        assert second.token in outbox_transport.outbox[1].text

    @pytest.mark.asyncio
    async def test_unknown_action_is_validation_error(
        self, client, user_lookup, memory_store
    ):
        """Only known actions are accepted."""
        response = await client.post(_URL, json={"action_type": "delete-account"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert memory_store.records() == []

    @pytest.mark.asyncio
    async def test_extra_fields_rejected(self, client, user_lookup):
        """Clients cannot pick the host or user."""
        response = await client.post(
            _URL, json={"action_type": "verify", "host": "evil.example"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_deleted_user_is_unauthorized(self, client, memory_store):
        """A valid session for a vanished user gets 401."""
        with patch.object(UserRepository, "get_by_id", AsyncMock(return_value=None)):
            response = await client.post(_URL, json={"action_type": "verify"})

        assert response.status_code == 401
        assert memory_store.records() == []

    @pytest.mark.asyncio
    async def test_unresolvable_recipient_is_404(self, client, identity, memory_store):
        """An email the directory cannot resolve returns 404."""
        stranger = SimpleNamespace(id=uuid.uuid4(), email="stranger@example.com")
        with patch.object(
            UserRepository, "get_by_id", AsyncMock(return_value=stranger)
        ):
            response = await client.post(_URL, json={"action_type": "verify"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "IDENTITY_NOT_RESOLVED"

    @pytest.mark.asyncio
    async def test_transport_failure_is_502(
        self, client, user_lookup, outbox_transport
    ):
        """Mail failures surface as MAIL_TRANSPORT_ERROR."""
        with patch.object(
            outbox_transport, "send", AsyncMock(side_effect=TransportError())
        ):
            response = await client.post(_URL, json={"action_type": "verify"})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "MAIL_TRANSPORT_ERROR"

    @pytest.mark.asyncio
    async def test_requires_authentication(self, unauthenticated_client):
        """Requests without a session cookie get 401."""
        response = await unauthenticated_client.post(
            _URL, json={"action_type": "verify"}
        )
        assert response.status_code == 401
