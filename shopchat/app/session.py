#!/usr/bin/env python3
"""
Conversation store for the shop chatbot.

This module handles conversation and message persistence. Conversations and
messages are independent rows linked by ``conversation_id``; messages are
append-only and ordered by timestamp.
"""

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func, update

from .config import Config
from ..data.database import SessionLocal
from ..data.models import Conversation, Message, utcnow
from ..schemas.io_models import ConversationOut, MessageOut, SENDERS
from ..utils.errors import InvalidArgument
from ..utils.logger import get_logger

logger = get_logger(__name__)


def derive_title(user_message: str, max_chars: int = Config.TITLE_MAX_CHARS) -> str:
    """First ``max_chars`` characters of the opening message, with an ellipsis if cut."""
    title = user_message[:max_chars]
    if len(user_message) > max_chars:
        title += "..."
    return title


class ConversationStore:
    """Manages conversation lifecycle and append-only message history."""

    def __init__(self, session_factory=SessionLocal):
        """
        Initialize the store.

        Args:
            session_factory: SQLAlchemy session factory for the chat tables
        """
        self.session_factory = session_factory

    def get_conversation(self, conversation_id: str) -> Optional[ConversationOut]:
        db = self.session_factory()
        try:
            row = db.query(Conversation).filter(Conversation.conversation_id == conversation_id).first()
            return ConversationOut.model_validate(row) if row else None
        finally:
            db.close()

    def resolve_or_create(self, user_id: str, conversation_id: Optional[str] = None) -> ConversationOut:
        """
        Return the conversation for ``conversation_id`` or start a new one.

        An unknown identifier is not an error: the caller silently gets a
        fresh conversation with a newly generated identifier.
        """
        if conversation_id:
            existing = self.get_conversation(conversation_id)
            if existing:
                return existing
            logger.warning("Conversation %s not found, starting a new one", conversation_id)

        now = utcnow()
        row = Conversation(
            conversation_id=str(uuid.uuid4()),
            user_id=user_id,
            title=Config.DEFAULT_TITLE,
            title_set=False,
            created_at=now,
            updated_at=now,
        )
        db = self.session_factory()
        try:
            db.add(row)
            db.commit()
            return ConversationOut.model_validate(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def append_message(self, conversation_id: str, sender: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> MessageOut:
        """
        Persist one message.

        Raises:
            InvalidArgument: sender is not ``user`` or ``ai``
        """
        if sender not in SENDERS:
            raise InvalidArgument(f"Invalid sender: {sender!r}")

        row = Message(
            message_id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            sender=sender,
            content=content,
            timestamp=utcnow(),
            meta=metadata,
        )
        db = self.session_factory()
        try:
            db.add(row)
            db.commit()
            return MessageOut.model_validate(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def count_messages(self, conversation_id: str) -> int:
        db = self.session_factory()
        try:
            return (
                db.query(func.count(Message.id))
                .filter(Message.conversation_id == conversation_id)
                .scalar()
            )
        finally:
            db.close()

    def list_messages(self, conversation_id: str) -> List[MessageOut]:
        """Messages of a conversation, oldest first."""
        db = self.session_factory()
        try:
            rows = (
                db.query(Message)
                .filter(Message.conversation_id == conversation_id)
                .order_by(Message.timestamp.asc(), Message.id.asc())
                .all()
            )
            return [MessageOut.model_validate(r) for r in rows]
        finally:
            db.close()

    def update_title_if_first_exchange(self, conversation_id: str, user_message: str) -> bool:
        """
        Derive the title from the opening message, exactly once.

        The ``title_set`` flag is checked and flipped in the same UPDATE, so a
        retried or concurrent turn cannot rename the conversation again.

        Returns:
            True if this call set the title
        """
        db = self.session_factory()
        try:
            result = db.execute(
                update(Conversation)
                .where(Conversation.conversation_id == conversation_id)
                .where(Conversation.title_set.is_(False))
                .values(title=derive_title(user_message), title_set=True, updated_at=utcnow())
            )
            db.commit()
            return result.rowcount == 1
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def list_conversations(self, user_id: str, limit: int = Config.MAX_CONVERSATIONS) -> List[ConversationOut]:
        """A user's conversations, most recently updated first."""
        limit = max(1, min(limit, Config.MAX_CONVERSATIONS))
        db = self.session_factory()
        try:
            rows = (
                db.query(Conversation)
                .filter(Conversation.user_id == user_id)
                .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
                .limit(limit)
                .all()
            )
            return [ConversationOut.model_validate(r) for r in rows]
        finally:
            db.close()
