#!/usr/bin/env python3
"""
Prompt builder module for the shop chatbot.

This module constructs the two prompts of a turn: the intent/entity
extraction instruction and the grounded reply prompt.
"""

import json
from typing import Any, Dict, List, Optional

from .config import Config
from ..schemas.io_models import ContextBundle, OrderOut, ProductOut

INTENT_SYSTEM_PROMPT = """You are an AI assistant for an e-commerce clothing website. Analyze the user's message and extract:
1. Intent (product_search, order_inquiry, general_help, complaint, return_request)
2. Entities (product categories, brands, order numbers, user preferences)
3. Required information still needed

Respond in JSON format only:
{
  "intent": "intent_type",
  "entities": {
    "category": "category_if_mentioned",
    "brand": "brand_if_mentioned",
    "department": "department_if_mentioned",
    "name": "product_name_if_mentioned",
    "price_range": {"min": number, "max": number},
    "order_id": "order_id_if_mentioned",
    "user_id": "user_id_if_mentioned"
  },
  "missing_info": ["list_of_missing_required_info"],
  "confidence": 0.9
}
Omit entity fields that are not mentioned. Do not add any text outside the JSON."""


def format_date(value) -> str:
    return f"{value.month}/{value.day}/{value.year}"


class PromptBuilder:
    """Builds prompts for the LLM with the turn's intent and retrieved context."""

    PERSONA = """You are a helpful customer service AI for an e-commerce clothing website.
Be friendly, professional, and concise. Help users with product searches, order inquiries, and general questions.
Only mention products and orders that appear in the information below; never invent items, prices or order details."""

    def __init__(self, persona: str = None, max_items: int = Config.MAX_CONTEXT_PRODUCTS):
        """Initialize the prompt builder."""
        self.persona = persona or self.PERSONA
        self.max_items = max_items

    def format_products(self, products: List[ProductOut]) -> str:
        lines = ["Here are relevant products I found:"]
        for i, p in enumerate(products[: self.max_items], 1):
            lines.append(f"{i}. {p.name} by {p.brand} - ${p.retail_price:.2f} ({p.category})")
        return "\n".join(lines)

    def format_orders(self, orders: List[OrderOut]) -> str:
        lines = ["Here are your recent orders:"]
        for i, o in enumerate(orders[: self.max_items], 1):
            lines.append(
                f"{i}. Order #{o.order_id} - Status: {o.status}, Items: {o.num_of_item}, Date: {format_date(o.created_at)}"
            )
        return "\n".join(lines)

    def format_context(self, context: Optional[ContextBundle]) -> str:
        """Human-readable enumeration of the context bundle; empty when there is none."""
        if context is None:
            return ""
        blocks = []
        if context.products:
            blocks.append(self.format_products(context.products))
        if context.orders:
            blocks.append(self.format_orders(context.orders))
        return "\n\n".join(blocks)

    def build_response_prompt(self, user_message: str, intent: str, entities: Dict[str, Any], context: Optional[ContextBundle] = None) -> str:
        """
        Build the reply-generation prompt.

        Args:
            user_message: Raw user text
            intent: Intent label for this turn
            entities: Populated entity fields
            context: Retrieved products or orders, if any

        Returns:
            Formatted prompt string
        """
        context_text = self.format_context(context)
        return (
            f"{self.persona}\n\n"
            f"User Intent: {intent}\n"
            f"Extracted Info: {json.dumps(entities or {}, sort_keys=True)}\n"
            f"{context_text}\n\n"
            f"User Message: {user_message}"
        )
