"""Guestbook-style message board."""

import logging

from ..errors import AuthError, ValidationError
from ..storage import GardenStore, Message
from ..tree.service import check_credential

logger = logging.getLogger(__name__)


class MessageBoard:
    """Append-only notes with admin-gated deletes."""

    def __init__(self, store: GardenStore, admin_password: str):
        self.store = store
        self.admin_password = admin_password

    def list_messages(self) -> list[Message]:
        return self.store.list_messages()

    def post_message(self, name: str | None, text: str | None) -> Message:
        """Add a note. Text is trimmed and must not be empty."""
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("empty")

        message = self.store.add_message(name or "", text.strip())
        logger.info(f"Message {message.id} posted")
        return message

    def delete_message(self, credential: str | None, message_id: int | str) -> bool:
        """Delete one note. Returns False if no such note exists.

        The credential is checked before the id is parsed.
        """
        self._authorize(credential)
        try:
            message_id = int(message_id)
        except (TypeError, ValueError):
            return False
        deleted = self.store.delete_message(message_id)
        if deleted:
            logger.info(f"Message {message_id} deleted")
        return deleted

    def clear_messages(self, credential: str | None) -> int:
        """Delete every note."""
        self._authorize(credential)
        count = self.store.clear_messages()
        logger.info(f"Cleared {count} messages")
        return count

    def _authorize(self, credential: str | None) -> None:
        try:
            check_credential(credential, self.admin_password)
        except AuthError:
            logger.warning("Message delete rejected: bad admin credential")
            raise
