"""
Tests for delivery channels.
"""

from unittest.mock import AsyncMock, patch

import pytest
from telegram.error import BadRequest, Forbidden, NetworkError, RetryAfter, TimedOut

from cycletrack.exceptions import DeliveryError
from cycletrack.models import Reminder
from cycletrack.notifications.sender import (
    LoggingDeliveryChannel,
    TelegramDeliveryChannel,
    format_reminder_message,
)


@pytest.fixture
def reminder():
    return Reminder(
        id=7,
        subject_id="12345",
        category="period_reminder",
        title="Period Starting Soon",
        message="Your next period is predicted in 1 day.",
        priority="high",
    )


@pytest.fixture
def bot():
    bot = AsyncMock()
    bot.send_message = AsyncMock(return_value=None)
    return bot


class TestFormatting:
    """Test message rendering."""

    def test_format_reminder_message(self, reminder):
        text = format_reminder_message(reminder)
        assert text == "🔔 <b>Period Starting Soon</b>\n\nYour next period is predicted in 1 day."

    def test_html_is_escaped(self, reminder):
        reminder.title = "Tips <3"
        reminder.message = "Rest & relax"
        text = format_reminder_message(reminder)
        assert "<b>Tips &lt;3</b>" in text
        assert "Rest &amp; relax" in text


class TestLoggingDeliveryChannel:
    """Test the logging channel."""

    @pytest.mark.asyncio
    async def test_deliver_counts(self, reminder):
        channel = LoggingDeliveryChannel()
        await channel.deliver(reminder)
        assert channel.delivered == 1


class TestTelegramDeliveryChannel:
    """Test the Telegram channel with a mocked bot."""

    @pytest.mark.asyncio
    async def test_success(self, bot, reminder):
        channel = TelegramDeliveryChannel(bot, lambda subject_id: int(subject_id))

        await channel.deliver(reminder)

        bot.send_message.assert_awaited_once_with(
            chat_id=12345,
            text=format_reminder_message(reminder),
            parse_mode="HTML"
        )

    @pytest.mark.asyncio
    async def test_async_resolver(self, bot, reminder):
        async def resolve(subject_id):
            return 999

        await TelegramDeliveryChannel(bot, resolve).deliver(reminder)

        assert bot.send_message.await_args.kwargs['chat_id'] == 999

    @pytest.mark.asyncio
    async def test_unknown_chat(self, bot, reminder):
        channel = TelegramDeliveryChannel(bot, lambda subject_id: None)

        with pytest.raises(DeliveryError) as exc_info:
            await channel.deliver(reminder)

        assert exc_info.value.retryable is False
        bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    @patch('cycletrack.notifications.sender.asyncio.sleep', new_callable=AsyncMock)
    async def test_retry_after(self, mock_sleep, bot, reminder):
        bot.send_message.side_effect = [RetryAfter(2), None]

        await TelegramDeliveryChannel(bot).deliver(reminder)

        assert bot.send_message.await_count == 2
        mock_sleep.assert_awaited_once()
        assert mock_sleep.await_args.args[0] in (2, 2.0)

    @pytest.mark.asyncio
    @patch('cycletrack.notifications.sender.asyncio.sleep', new_callable=AsyncMock)
    async def test_network_errors_exhaust_retries(self, mock_sleep, bot, reminder):
        bot.send_message.side_effect = NetworkError("connection reset")

        with pytest.raises(DeliveryError) as exc_info:
            await TelegramDeliveryChannel(bot, max_retries=2).deliver(reminder)

        assert exc_info.value.retryable is True
        assert exc_info.value.reminder_id == 7
        assert bot.send_message.await_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [5, 10]

    @pytest.mark.asyncio
    @patch('cycletrack.notifications.sender.asyncio.sleep', new_callable=AsyncMock)
    async def test_timeout_then_success(self, mock_sleep, bot, reminder):
        bot.send_message.side_effect = [TimedOut(), None]

        await TelegramDeliveryChannel(bot).deliver(reminder)

        assert bot.send_message.await_count == 2

    @pytest.mark.asyncio
    async def test_forbidden_is_not_retried(self, bot, reminder):
        bot.send_message.side_effect = Forbidden("bot was blocked by the user")

        with pytest.raises(DeliveryError) as exc_info:
            await TelegramDeliveryChannel(bot).deliver(reminder)

        assert exc_info.value.retryable is False
        assert bot.send_message.await_count == 1

    @pytest.mark.asyncio
    async def test_bad_request_is_not_retried(self, bot, reminder):
        bot.send_message.side_effect = BadRequest("chat not found")

        with pytest.raises(DeliveryError):
            await TelegramDeliveryChannel(bot).deliver(reminder)

        assert bot.send_message.await_count == 1
