"""Tests for the best-effort conversation close chain."""

import pytest

from gateway.closer import ConversationCloser
from gateway.exceptions import RemoteServiceError


def _fail(name):
    return RemoteServiceError(f"{name} rejected", error_code="REMOTE_HTTP_ERROR", status_code=400)


class TestConversationCloser:
    """Test suite for ConversationCloser."""

    @pytest.mark.asyncio
    async def test_first_method_success_makes_one_call(self, mock_remote_client):
        """Test that a successful participant-left entry ends the chain."""
        closer = ConversationCloser(mock_remote_client)

        outcome = await closer.close("tok", "conv-1")

        assert outcome.closed_via == "participant_left"
        assert outcome.attempted == ["participant_left"]
        assert mock_remote_client.post_entry.await_count == 1
        args = mock_remote_client.post_entry.await_args.args
        assert args[:3] == ("tok", "conv-1", "ParticipantChanged")
        assert args[3]["entries"][0]["participant"]["role"] == "EndUser"
        mock_remote_client.send_message.assert_not_awaited()
        mock_remote_client.delete_conversation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_through_to_next_method(self, mock_remote_client):
        mock_remote_client.post_entry.side_effect = [_fail("participant"), _fail("routing")]
        closer = ConversationCloser(mock_remote_client, close_message="Bye from the test")

        outcome = await closer.close("tok", "conv-1")

        assert outcome.closed_via == "end_message"
        assert outcome.attempted == ["participant_left", "routing_end", "end_message"]
        assert mock_remote_client.send_message.await_args.args[2] == "Bye from the test"
        mock_remote_client.end_conversation_session.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_methods_failing_still_reports_success(self, mock_remote_client):
        """Test that total failure is swallowed and reported as success."""
        mock_remote_client.post_entry.side_effect = _fail("entry")
        mock_remote_client.send_message.side_effect = _fail("message")
        mock_remote_client.end_conversation_session.side_effect = _fail("session")
        mock_remote_client.delete_conversation.side_effect = _fail("delete")

        outcome = await ConversationCloser(mock_remote_client).close("tok", "conv-1")

        assert outcome.success is True
        assert outcome.closed_via is None
        assert len(outcome.attempted) == 5
        assert outcome.to_dict()["success"] is True

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self, mock_remote_client):
        """Test that programming errors are not hidden by the fallback chain."""
        mock_remote_client.post_entry.side_effect = TypeError("bad call")

        with pytest.raises(TypeError):
            await ConversationCloser(mock_remote_client).close("tok", "conv-1")

    def test_outcome_to_dict(self):
        from gateway.closer import CloseOutcome

        data = CloseOutcome("conv-1", closed_via="routing_end").to_dict()

        assert data["conversationId"] == "conv-1"
        assert data["closedVia"] == "routing_end"
        assert "routing_end" in data["message"]
