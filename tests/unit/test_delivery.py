"""
Unit tests for session string delivery over WhatsApp.
"""

from unittest.mock import AsyncMock

from pairing_api.whatsapp.delivery import build_delivery_messages, deliver_session


class TestBuildDeliveryMessages:
    """Tests for build_delivery_messages."""

    def test_three_messages_in_order(self):
        messages = build_delivery_messages("SESSION==", "MY BOT")

        assert len(messages) == 3
        assert "Pairing Successful" in messages[0]
        assert "MY BOT" in messages[0]
        assert messages[1] == "SESSION=="
        assert "SESSION_DATA" in messages[2]
        assert "Powered by MY BOT" in messages[2]


class TestDeliverSession:
    """Tests for deliver_session."""

    async def test_sends_to_own_number(self):
        client = AsyncMock()
        sleep = AsyncMock()

        delivered = await deliver_session(
            client, "15551234567", "SESSION==", "MY BOT", interval=1.5, sleep=sleep
        )

        assert delivered is True
        assert client.send_text.await_count == 3
        phones = {call.args[0] for call in client.send_text.await_args_list}
        assert phones == {"15551234567"}
        assert client.send_text.await_args_list[1].args[1] == "SESSION=="
        # Pauses only between messages.
        assert [call.args[0] for call in sleep.await_args_list] == [1.5, 1.5]

    async def test_failure_is_swallowed(self):
        client = AsyncMock()
        client.send_text.side_effect = [None, RuntimeError("not on WhatsApp")]

        delivered = await deliver_session(
            client, "15551234567", "SESSION==", "MY BOT", sleep=AsyncMock()
        )

        assert delivered is False
        assert client.send_text.await_count == 2
