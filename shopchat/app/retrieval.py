#!/usr/bin/env python3
"""
Retrieval module for the shop chatbot.

Maps the current turn's intent to at most one catalogue or order query.
"""

from typing import Optional

from .config import Config
from ..data.database import SessionLocal
from ..data.queries import ProductCriteria, find_orders, find_products
from ..schemas.io_models import ContextBundle, IntentResult, ORDER_INQUIRY, PRODUCT_SEARCH
from ..utils.errors import InvalidArgument
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ContextRetriever:
    """Builds the context bundle for a turn from its IntentResult alone."""

    def __init__(self, session_factory=SessionLocal, max_products: int = Config.MAX_CONTEXT_PRODUCTS):
        self.session_factory = session_factory
        self.max_products = max_products

    def retrieve(self, intent_result: IntentResult) -> Optional[ContextBundle]:
        entities = intent_result.entities

        if intent_result.intent == PRODUCT_SEARCH:
            criteria = ProductCriteria(
                category=entities.category,
                brand=entities.brand,
                department=entities.department,
                name=entities.name,
                price_range=entities.price_range,
                limit=self.max_products,
            )
            products = find_products(criteria, session_factory=self.session_factory)
            logger.info("[RETRIEVAL] %d product(s) matched", len(products))
            return ContextBundle(products=products)

        if intent_result.intent == ORDER_INQUIRY and entities.user_id:
            try:
                orders = find_orders(entities.user_id, session_factory=self.session_factory)
            except InvalidArgument as e:
                # extracted from free text, so a bad id means "no context", not a failed turn
                logger.warning("[RETRIEVAL] Skipping order lookup: %s", e)
                return None
            logger.info("[RETRIEVAL] %d order(s) found for user %s", len(orders), entities.user_id)
            return ContextBundle(orders=orders)

        return None
