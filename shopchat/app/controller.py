"""Controller / Orchestrator for a chat turn.

One turn runs strictly in sequence: resolve the conversation, store the
user's message, classify it, fetch context, generate the reply, store the
reply and settle the title. The controller holds no per-turn state; all of
it lives in the conversation store.
"""
import time
from typing import List, Optional

from .config import Config
from .generate import GenerationClient, ResponseGenerator
from .retrieval import ContextRetriever
from .session import ConversationStore
from ..nlu.intent_extractor import IntentExtractor
from ..schemas.io_models import (
    SENDER_AI,
    SENDER_USER,
    ChatMetadata,
    ChatResponse,
    ConversationOut,
    HistoryMessage,
)
from ..utils.errors import InvalidArgument
from ..utils.logger import get_logger
from ..utils.security import mask_pii

logger = get_logger(__name__)


class Controller:
    def __init__(
        self,
        store: ConversationStore = None,
        extractor: IntentExtractor = None,
        retriever: ContextRetriever = None,
        generator: ResponseGenerator = None,
        client: GenerationClient = None,
    ):
        # one client handle shared by both LLM call sites unless they are injected
        if extractor is None or generator is None:
            client = client or GenerationClient()
        self.store = store or ConversationStore()
        self.extractor = extractor or IntentExtractor(client)
        self.retriever = retriever or ContextRetriever()
        self.generator = generator or ResponseGenerator(client)

    def handle_chat(self, message: Optional[str], conversation_id: Optional[str] = None, user_id: Optional[str] = None) -> ChatResponse:
        if not message or not message.strip():
            raise InvalidArgument("Message is required")
        user_id = user_id or Config.DEFAULT_USER_ID

        logger.info("[WORKFLOW] 1. Controller received message: %r", mask_pii(message))
        start = time.perf_counter()

        conversation = self.store.resolve_or_create(user_id, conversation_id)
        logger.info("[WORKFLOW] 2. Conversation %s resolved", conversation.conversation_id)

        self.store.append_message(conversation.conversation_id, SENDER_USER, message)

        intent_result = self.extractor.extract(message)
        entities = intent_result.entities.populated()
        logger.info(
            "[WORKFLOW] 3. Intent %s (confidence %.2f), entities: %s",
            intent_result.intent, intent_result.confidence, sorted(entities),
        )

        # fresh bundle every turn; never carried over
        context = self.retriever.retrieve(intent_result)
        logger.info("[WORKFLOW] 4. Context bundle: %s", "none" if context is None else "present")

        reply = self.generator.generate(message, intent_result.intent, entities, context)
        response_time = int(round((time.perf_counter() - start) * 1000))
        logger.info("[WORKFLOW] 5. Reply generated in %d ms", response_time)

        self.store.append_message(
            conversation.conversation_id,
            SENDER_AI,
            reply,
            metadata={
                "query_type": intent_result.intent,
                "entities_extracted": list(entities.keys()),
                "response_time": response_time,
            },
        )

        # only the opening exchange names the conversation
        if not conversation.title_set and self.store.count_messages(conversation.conversation_id) == 2:
            if self.store.update_title_if_first_exchange(conversation.conversation_id, message):
                logger.info("[WORKFLOW] 6. Conversation title set")

        return ChatResponse(
            response=reply,
            conversation_id=conversation.conversation_id,
            metadata=ChatMetadata(intent=intent_result.intent, entities=entities, response_time=response_time),
        )

    def get_history(self, conversation_id: str) -> List[HistoryMessage]:
        return [
            HistoryMessage(sender=m.sender, content=m.content, timestamp=m.timestamp, metadata=m.metadata)
            for m in self.store.list_messages(conversation_id)
        ]

    def get_conversations(self, user_id: str) -> List[ConversationOut]:
        return self.store.list_conversations(user_id or Config.DEFAULT_USER_ID)
