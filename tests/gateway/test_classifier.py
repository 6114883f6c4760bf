"""Tests for entry normalization and classification."""

import json

import pytest

from gateway.classifier import (
    ConversationEntry,
    EntryClassifier,
    SenderRole,
    newest_first,
    normalize_entries,
    parse_role,
)
from tests.conftest import make_entry


class TestConversationEntry:
    """Test suite for defensive entry parsing."""

    def test_message_fields_are_extracted(self):
        """Test that text, role, sender and timestamp are read from the wire format."""
        entry = ConversationEntry.from_raw(
            make_entry("Agent", "Hi, I'm Sam", 3, sender_name="Sam")
        )

        assert entry.role is SenderRole.AGENT
        assert entry.sender_name == "Sam"
        assert entry.text == "Hi, I'm Sam"
        assert entry.timestamp == 3
        assert entry.entry_type == "Message"

    def test_payload_encoded_as_json_string(self):
        """Test that a string-encoded entryPayload is decoded."""
        raw = make_entry("Chatbot", "Hello", 5)
        raw["entryPayload"] = json.dumps(raw["entryPayload"])

        entry = ConversationEntry.from_raw(raw)

        assert entry.text == "Hello"

    def test_malformed_entry_degrades_to_unknown(self):
        """Test that missing fields never raise."""
        entry = ConversationEntry.from_raw({"entryPayload": "{not json"})

        assert entry.role is SenderRole.UNKNOWN
        assert entry.text == ""
        assert entry.timestamp == 0

    def test_non_mapping_entry(self):
        """Test that a non-dict entry becomes an empty Unknown entry."""
        entry = ConversationEntry.from_raw(None)
        assert entry.role is SenderRole.UNKNOWN
        assert entry.entry_id == ""

    def test_timestamp_fallback_order(self):
        """Test that later timestamp fields are used when earlier ones are missing."""
        raw = make_entry("Chatbot", "Hello", 0)
        del raw["clientTimestamp"]
        raw["serverReceivedTimestamp"] = 42
        raw["timestamp"] = 7

        assert ConversationEntry.from_raw(raw).timestamp == 42

    def test_to_dict_shape(self):
        """Test the outward entry shape."""
        data = ConversationEntry.from_raw(make_entry("Chatbot", "Hello", 1, entry_id="e1")).to_dict()
        assert data == {
            "id": "e1",
            "entryType": "Message",
            "role": "Chatbot",
            "senderName": "Chatbot",
            "text": "Hello",
            "timestamp": 1,
        }

    @pytest.mark.parametrize(
        ("raw_role", "expected"),
        [
            ("EndUser", SenderRole.END_USER),
            ("chatbot", SenderRole.CHATBOT),
            ("AGENT", SenderRole.AGENT),
            ("System", SenderRole.UNKNOWN),
            ("", SenderRole.UNKNOWN),
            (None, SenderRole.UNKNOWN),
        ],
    )
    def test_parse_role(self, raw_role, expected):
        """Test role mapping, including System collapsing to Unknown."""
        assert parse_role(raw_role) is expected

    def test_entries_without_timestamp_sort_last(self):
        """Test that entries missing a timestamp are treated as oldest."""
        entries = normalize_entries(
            [make_entry("Chatbot", "a", 0), make_entry("Agent", "b", 10)]
        )
        assert [entry.text for entry in newest_first(entries)] == ["b", "a"]


class TestEntryClassifier:
    """Test suite for EntryClassifier."""

    def test_automated_process_sender_is_noise_regardless_of_role(self, classifier: EntryClassifier):
        """Test that an Automated Process sender is noise even as an Agent."""
        entry = ConversationEntry.from_raw(
            make_entry("Agent", "Anything at all", 1, sender_name="Automated Process")
        )

        result = classifier.classify(entry)

        assert result.is_noise is True
        assert result.role is SenderRole.AGENT
        assert result.is_qualifying_response is False

    def test_automated_message_reason_is_noise(self, classifier: EntryClassifier):
        """Test that the AutomatedResponse message reason marks noise."""
        entry = ConversationEntry.from_raw(
            make_entry("Chatbot", "Welcome!", 1, message_reason="AutomatedResponse")
        )
        assert classifier.is_noise(entry) is True

    def test_boilerplate_phrase_is_noise_case_insensitively(self, classifier: EntryClassifier):
        """Test queue and greeting boilerplate detection."""
        entry = ConversationEntry.from_raw(
            make_entry("Chatbot", "THANKS FOR REACHING OUT to Acme!", 1)
        )
        assert classifier.is_noise(entry) is True

    def test_end_user_message_is_not_a_response(self, classifier: EntryClassifier):
        """Test that end-user messages never qualify as responses."""
        entry = ConversationEntry.from_raw(make_entry("EndUser", "hi", 1))
        assert classifier.is_qualifying_response(entry) is False

    def test_non_message_entry_is_not_a_response(self, classifier: EntryClassifier):
        """Test that routing and participant entries never qualify."""
        entry = ConversationEntry.from_raw(
            make_entry("Chatbot", "", 1, entry_type="RoutingResult")
        )
        assert classifier.is_qualifying_response(entry) is False

    def test_classification_is_idempotent(self, classifier: EntryClassifier):
        """Test that classifying the same entry twice gives the same answer."""
        entry = ConversationEntry.from_raw(make_entry("Agent", "Hi, I'm Sam", 3))
        assert classifier.classify(entry) == classifier.classify(entry)

    def test_reply_and_transcript_views(self, classifier: EntryClassifier):
        """Test that EndUser entries appear only in the transcript view."""
        entries = normalize_entries(
            [
                make_entry("Agent", "Hi, I'm Sam", 3),
                make_entry("EndUser", "hi", 1),
                make_entry("Chatbot", "One moment while I connect you...", 2),
            ]
        )

        replies = classifier.reply_entries(entries)
        transcript = classifier.transcript_entries(entries)

        assert [entry.text for entry in replies] == ["Hi, I'm Sam"]
        assert [entry.text for entry in transcript] == ["hi", "Hi, I'm Sam"]

    def test_latest_message_includes_trailing_noise(self, classifier: EntryClassifier):
        """Test that a canned notice after a genuine reply is still the newest message."""
        entries = normalize_entries(
            [
                make_entry("EndUser", "hi", 1),
                make_entry("Agent", "Hi, I'm Sam", 2, sender_name="Sam"),
                make_entry("Chatbot", "Thanks for reaching out", 3),
            ]
        )

        latest = classifier.latest_message(entries)

        assert latest is not None
        assert latest.role is SenderRole.CHATBOT
        assert classifier.is_qualifying_response(latest) is False

    def test_latest_message_empty(self, classifier: EntryClassifier):
        """Test that no entries gives no latest message."""
        assert classifier.latest_message([]) is None


class TestConversationEnded:
    """Test suite for end-of-conversation detection."""

    def test_conversation_close_entry(self, classifier: EntryClassifier):
        entries = normalize_entries([make_entry("System", "", 5, entry_type="ConversationClose")])
        assert classifier.conversation_ended(entries) is True

    def test_routing_end_conversation(self, classifier: EntryClassifier):
        raw = make_entry("System", "", 5, entry_type="RoutingResult")
        raw["entryPayload"]["routingType"] = "EndConversation"
        assert classifier.conversation_ended(normalize_entries([raw])) is True

    def test_end_user_left(self, classifier: EntryClassifier):
        raw = make_entry("System", "", 5, entry_type="ParticipantChanged")
        raw["entryPayload"]["entries"] = [
            {"operation": "remove", "participant": {"role": "EndUser"}}
        ]
        assert classifier.conversation_ended(normalize_entries([raw])) is True

    def test_agent_joining_does_not_end(self, classifier: EntryClassifier):
        """Test that a participant being added is not an end signal."""
        raw = make_entry("System", "", 5, entry_type="ParticipantChanged")
        raw["entryPayload"]["entries"] = [
            {"operation": "add", "participant": {"role": "Agent"}}
        ]
        assert classifier.conversation_ended(normalize_entries([raw])) is False

    def test_plain_messages_do_not_end(self, classifier: EntryClassifier):
        entries = normalize_entries([make_entry("Chatbot", "Hello", 1)])
        assert classifier.conversation_ended(entries) is False
