"""
User feedback submission.

Feedback is low-stakes, so submit() always reports success to the caller.
A delivery failure is not dropped: the payload goes to the local outbox and
is re-sent by flush_pending(). Delivery is therefore eventually consistent,
not guaranteed at submit time.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from plum.data.database import LocalStore

logger = logging.getLogger(__name__)

FeedbackSender = Callable[[Dict[str, Any]], Awaitable[Any]]


class FeedbackService:
    """Sends feedback through a backend callable, queueing failures locally."""

    def __init__(self, send: FeedbackSender, store: LocalStore):
        """
        Args:
            send: Coroutine delivering one payload; raises on failure
            store: Local store holding the outbox
        """
        self.send = send
        self.store = store

    async def submit(
        self,
        rating: Optional[int] = None,
        message: Optional[str] = None,
        platform: str = "web",
        user_id: Optional[str] = None,
    ) -> bool:
        """
        Submit feedback. Returns True whenever there was something to submit.

        Raises:
            ValueError: If both rating and message are empty, or rating is outside 1-5
        """
        message = (message or "").strip() or None
        if not rating and not message:
            raise ValueError("Feedback needs a rating or a message")
        if rating and not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")

        payload = {
            "user_id": user_id,
            "rating": rating or None,
            "message": message,
            "platform": platform,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            await self.send(payload)
            logger.info(f"Submitted feedback (rating={rating}, platform={platform})")
        except Exception as e:
            try:
                outbox_id = self.store.enqueue_feedback(payload)
            except sqlite3.Error as store_error:
                logger.error(f"Feedback dropped, outbox unavailable ({store_error}): {payload}")
                return True
            logger.warning(f"Feedback delivery failed ({type(e).__name__}); queued as #{outbox_id}")

        return True

    async def flush_pending(self) -> int:
        """
        Re-send queued feedback, oldest first.

        Returns:
            Number of payloads delivered
        """
        delivered = 0
        for entry in self.store.pending_feedback():
            try:
                await self.send(entry["payload"])
            except Exception as e:
                self.store.record_feedback_attempt(entry["id"])
                logger.warning(
                    f"Feedback #{entry['id']} still undeliverable after {entry['attempts'] + 1} attempts: "
                    f"{type(e).__name__}"
                )
                continue
            self.store.remove_feedback(entry["id"])
            delivered += 1

        if delivered:
            logger.info(f"Flushed {delivered} queued feedback submissions")
        return delivered
