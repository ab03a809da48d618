"""Shared fixtures for the test suite: in-memory database and a scripted LLM."""
import json
from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from shopchat.app.controller import Controller
from shopchat.app.generate import ResponseGenerator
from shopchat.app.retrieval import ContextRetriever
from shopchat.app.session import ConversationStore
from shopchat.data.database import create_tables, make_session_factory
from shopchat.data.models import Order, Product
from shopchat.nlu.intent_extractor import IntentExtractor
from shopchat.utils.errors import LLMError


def make_test_session_factory(path=None):
    """Fresh SQLite database; in-memory unless a file path is given."""
    if path:
        # one connection per thread, so concurrent sessions get real transactions
        engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False, "timeout": 30})
    else:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    create_tables(engine)
    return make_session_factory(engine)


PRODUCTS = [
    # id, cost, category, name, brand, retail_price, department
    (1, 10.0, "Jeans", "Slim Fit Jeans", "Levi's", 59.5, "Men"),
    (2, 8.0, "Jeans", "Bootcut Jeans", "Wrangler", 24.0, "Women"),
    (3, 30.0, "Jeans", "Premium Selvedge Jeans", "Levi's", 149.0, "Men"),
    (4, 5.0, "Tops & Tees", "Basic Crew Tee", "Hanes", 9.99, "Men"),
    (5, 12.0, "Sweaters", "Wool Cardigan", "J.Crew", 79.0, "Women"),
    (6, 6.0, "Active", "Running Shorts", "Nike", 19.99, "Men"),
    (7, 9.0, "Skinny JEANS", "Skinny Stretch Denim", "Gap", 100.0, "Women"),
    (8, 7.0, "Socks", "Ankle 100% Cotton", "Hanes", 5.0, "Men"),
]

ORDERS = [
    # order_id, user_id, status, num_of_item, created_at
    (101, 42, "Shipped", 2, datetime(2023, 1, 5, 10, 0)),
    (102, 42, "Complete", 1, datetime(2023, 3, 12, 9, 30)),
    (103, 42, "Returned", 3, datetime(2022, 11, 20, 15, 45)),
    (104, 7, "Processing", 1, datetime(2023, 2, 1, 8, 0)),
]


def seed_catalogue(session_factory):
    db = session_factory()
    try:
        for pid, cost, category, name, brand, price, department in PRODUCTS:
            db.add(Product(
                id=pid, cost=cost, category=category, name=name, brand=brand,
                retail_price=price, department=department, sku=f"SKU{pid}",
                distribution_center_id=1,
            ))
        for order_id, user_id, status, items, created in ORDERS:
            db.add(Order(
                order_id=order_id, user_id=user_id, status=status, gender="F",
                num_of_item=items, created_at=created,
            ))
        db.commit()
    finally:
        db.close()


class FakeLLMClient:
    """Stands in for GenerationClient; replies are consumed in order.

    A reply that is an exception instance is raised instead of returned.
    """

    def __init__(self, replies=None, default="OK"):
        self.replies = list(replies or [])
        self.default = default
        self.calls = []

    def complete(self, messages, temperature, max_tokens):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply


class RoutingFakeLLMClient:
    """Answers the intent prompt and the reply prompt differently, by temperature."""

    def __init__(self, intent_reply, answer="Here is what I found.", fail_intent=False, fail_answer=False):
        self.intent_reply = intent_reply
        self.answer = answer
        self.fail_intent = fail_intent
        self.fail_answer = fail_answer
        self.calls = []

    def complete(self, messages, temperature, max_tokens):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if temperature < 0.5:
            if self.fail_intent:
                raise LLMError("connection refused")
            return self.intent_reply
        if self.fail_answer:
            raise LLMError("timeout")
        return self.answer


PRODUCT_INTENT = json.dumps({
    "intent": "product_search",
    "entities": {"category": "jeans", "price_range": {"min": 20, "max": 100}},
    "missing_info": [],
    "confidence": 0.9,
})
HELP_INTENT = json.dumps({"intent": "general_help", "entities": {}, "missing_info": [], "confidence": 0.8})


def build_controller(session_factory, llm):
    """Controller wired to a test database and one scripted LLM client."""
    return Controller(
        store=ConversationStore(session_factory),
        extractor=IntentExtractor(llm),
        retriever=ContextRetriever(session_factory),
        generator=ResponseGenerator(llm),
    )
