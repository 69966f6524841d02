"""
Delivery channels for due reminders.

A channel delivers one reminder or raises DeliveryError. Retries within a
single delivery are the channel's business; a reminder that still fails
stays unsent and is retried by the next sweep.
"""

import asyncio
import html
from typing import Awaitable, Callable, Optional, Protocol, Union

from telegram import Bot
from telegram.error import (
    BadRequest,
    Forbidden,
    NetworkError,
    RetryAfter,
    TelegramError,
    TimedOut,
)

from cycletrack.exceptions import DeliveryError
from cycletrack.models.reminder import Reminder
from cycletrack.notifications.types import get_category_emoji
from cycletrack.utils.logger import get_logger, log_reminder_event

logger = get_logger(__name__)

ChatId = Union[int, str]
ChatIdResolver = Callable[[str], Union[Optional[ChatId], Awaitable[Optional[ChatId]]]]


class DeliveryChannel(Protocol):
    """Something that can deliver a reminder to its subject."""

    async def deliver(self, reminder: Reminder) -> None: ...


def format_reminder_message(reminder: Reminder) -> str:
    """
    HTML text of a reminder.

    Args:
        reminder: Reminder to render

    Returns:
        Emoji and bold title, a blank line, then the message
    """
    emoji = get_category_emoji(reminder.category)
    title = html.escape(reminder.title or '')
    message = html.escape(reminder.message or '')
    return f"{emoji} <b>{title}</b>\n\n{message}"


class LoggingDeliveryChannel:
    """Channel that only writes reminders to the log."""

    def __init__(self):
        self.delivered = 0

    async def deliver(self, reminder: Reminder) -> None:
        logger.info(
            f"Reminder for subject {reminder.subject_id}: {reminder.title} - {reminder.message}"
        )
        self.delivered += 1


class TelegramDeliveryChannel:
    """
    Channel sending reminders as Telegram messages.

    Args:
        bot: python-telegram-bot Bot instance
        resolve_chat_id: Maps a subject ID to a chat ID (sync or async);
            None means the subject has no chat
        max_retries: Retries after rate limiting or network errors
    """

    def __init__(
        self,
        bot: Bot,
        resolve_chat_id: Optional[ChatIdResolver] = None,
        max_retries: int = 3
    ):
        self.bot = bot
        self.resolve_chat_id = resolve_chat_id or (lambda subject_id: subject_id)
        self.max_retries = max_retries

    async def _chat_id(self, subject_id: str) -> Optional[ChatId]:
        chat_id = self.resolve_chat_id(subject_id)
        if asyncio.iscoroutine(chat_id):
            chat_id = await chat_id
        return chat_id

    async def deliver(self, reminder: Reminder) -> None:
        """
        Send a reminder, retrying rate limits and network errors.

        Raises:
            DeliveryError: If the chat is unknown, Telegram rejects the
                message or the retries are exhausted
        """
        chat_id = await self._chat_id(reminder.subject_id)
        if chat_id is None:
            raise DeliveryError(
                f"No chat for subject {reminder.subject_id}",
                reminder_id=reminder.id,
                retryable=False
            )

        text = format_reminder_message(reminder)
        retry_count = 0

        while True:
            try:
                await self.bot.send_message(chat_id=chat_id, text=text, parse_mode="HTML")
                log_reminder_event(
                    logger,
                    'delivered',
                    reminder.subject_id,
                    reminder_id=reminder.id,
                    category=reminder.category,
                    status='success',
                )
                return

            except RetryAfter as e:
                if retry_count >= self.max_retries:
                    raise DeliveryError(
                        f"Rate limited sending reminder {reminder.id}, retries exhausted",
                        reminder_id=reminder.id
                    ) from e
                retry_after = e.retry_after
                delay = retry_after.total_seconds() if hasattr(retry_after, 'total_seconds') else retry_after
                logger.warning(f"Rate limited for reminder {reminder.id}: retrying in {delay} seconds")
                await asyncio.sleep(delay)

            except Forbidden as e:
                # Subject blocked the bot
                raise DeliveryError(
                    f"Subject {reminder.subject_id} blocked the bot: {e}",
                    reminder_id=reminder.id,
                    retryable=False
                ) from e

            except BadRequest as e:
                raise DeliveryError(
                    f"Telegram rejected reminder {reminder.id}: {e}",
                    reminder_id=reminder.id,
                    retryable=False
                ) from e

            except (NetworkError, TimedOut) as e:
                if retry_count >= self.max_retries:
                    raise DeliveryError(
                        f"Network error sending reminder {reminder.id}, retries exhausted: {e}",
                        reminder_id=reminder.id
                    ) from e
                logger.warning(f"Network error sending reminder {reminder.id}: {e}")
                await asyncio.sleep(5 * (retry_count + 1))

            except TelegramError as e:
                raise DeliveryError(
                    f"Telegram error sending reminder {reminder.id}: {e}",
                    reminder_id=reminder.id
                ) from e

            retry_count += 1
