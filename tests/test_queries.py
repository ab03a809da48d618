#!/usr/bin/env python3
"""
Data access layer tests: product search and order lookup.

Runs against an in-memory SQLite catalogue seeded in tests/support.py.
"""

import unittest
from datetime import datetime
from unittest.mock import Mock

from shopchat.data.queries import (
    DateRange,
    OrderCriteria,
    ProductCriteria,
    find_orders,
    find_products,
    parse_user_id,
)
from shopchat.schemas.io_models import PriceRange
from shopchat.utils.errors import InvalidArgument

from support import make_test_session_factory, seed_catalogue


class TestFindProducts(unittest.TestCase):

    def setUp(self):
        self.sf = make_test_session_factory()
        seed_catalogue(self.sf)

    def ids(self, products):
        return [p.id for p in products]

    def test_category_and_price_range(self):
        """Category matches case-insensitively; price bounds are inclusive; cheapest first."""
        criteria = ProductCriteria(category="jeans", price_range=PriceRange(min=20, max=100))
        products = find_products(criteria, session_factory=self.sf)

        self.assertEqual(self.ids(products), [2, 1, 7])
        for p in products:
            self.assertIn("jeans", p.category.lower())
            self.assertTrue(20 <= p.retail_price <= 100)

    def test_empty_criteria_returns_cheapest(self):
        products = find_products(ProductCriteria(limit=3), session_factory=self.sf)
        self.assertEqual(self.ids(products), [8, 4, 6])

    def test_default_limit_is_ten(self):
        self.assertEqual(ProductCriteria().limit, 10)
        products = find_products(session_factory=self.sf)
        self.assertEqual(len(products), 8)
        prices = [p.retail_price for p in products]
        self.assertEqual(prices, sorted(prices))

    def test_brand_substring(self):
        products = find_products(ProductCriteria(brand="LEVI"), session_factory=self.sf)
        self.assertEqual(self.ids(products), [1, 3])

    def test_price_max_only_defaults_min_to_zero(self):
        criteria = ProductCriteria(price_range=PriceRange(max=20))
        products = find_products(criteria, session_factory=self.sf)
        self.assertEqual(self.ids(products), [8, 4, 6])

    def test_wildcard_characters_are_literal(self):
        products = find_products(ProductCriteria(name="%"), session_factory=self.sf)
        self.assertEqual(self.ids(products), [8])

    def test_no_matches_returns_empty_list(self):
        products = find_products(ProductCriteria(brand="Prada"), session_factory=self.sf)
        self.assertEqual(products, [])

    def test_department_and_limit(self):
        products = find_products(ProductCriteria(department="women", limit=2), session_factory=self.sf)
        self.assertEqual(self.ids(products), [2, 5])


class TestFindOrders(unittest.TestCase):

    def setUp(self):
        self.sf = make_test_session_factory()
        seed_catalogue(self.sf)

    def ids(self, orders):
        return [o.order_id for o in orders]

    def test_newest_first(self):
        orders = find_orders("42", session_factory=self.sf)
        self.assertEqual(self.ids(orders), [102, 101, 103])

    def test_integer_user_id(self):
        orders = find_orders(7, session_factory=self.sf)
        self.assertEqual(self.ids(orders), [104])

    def test_status_filter_is_case_insensitive(self):
        orders = find_orders("42", OrderCriteria(status="SHIP"), session_factory=self.sf)
        self.assertEqual(self.ids(orders), [101])

    def test_date_range_is_inclusive(self):
        criteria = OrderCriteria(date_range=DateRange(end=datetime(2023, 1, 5, 10, 0)))
        orders = find_orders("42", criteria, session_factory=self.sf)
        self.assertEqual(self.ids(orders), [101, 103])

        criteria = OrderCriteria(date_range=DateRange(start=datetime(2023, 1, 1), end=datetime(2023, 12, 31)))
        orders = find_orders("42", criteria, session_factory=self.sf)
        self.assertEqual(self.ids(orders), [102, 101])

    def test_limit(self):
        self.assertEqual(OrderCriteria().limit, 20)
        orders = find_orders("42", OrderCriteria(limit=1), session_factory=self.sf)
        self.assertEqual(self.ids(orders), [102])

    def test_unknown_user_returns_empty(self):
        self.assertEqual(find_orders("999", session_factory=self.sf), [])

    def test_non_numeric_user_id_issues_no_query(self):
        session_factory = Mock()
        with self.assertRaises(InvalidArgument):
            find_orders("john", session_factory=session_factory)
        session_factory.assert_not_called()

    def test_parse_user_id(self):
        self.assertEqual(parse_user_id(" 42 "), 42)
        self.assertEqual(parse_user_id(0), 0)
        for bad in ("-1", "4.2", "", None, -3, True, "12abc"):
            with self.assertRaises(InvalidArgument):
                parse_user_id(bad)

    def test_parse_user_id_rejects_non_ascii_digits(self):
        for bad in ("\u00b2", "4\u00b2", "\u0661\u0662"):
            with self.assertRaises(InvalidArgument):
                parse_user_id(bad)

        session_factory = Mock()
        with self.assertRaises(InvalidArgument):
            find_orders("\u00b2", session_factory=session_factory)
        session_factory.assert_not_called()

    def test_parse_user_id_bounded_to_64_bits(self):
        self.assertEqual(parse_user_id(str(2 ** 63 - 1)), 2 ** 63 - 1)
        for bad in (str(2 ** 63), 2 ** 63, "123456789012345678901234"):
            with self.assertRaises(InvalidArgument):
                parse_user_id(bad)
        self.assertEqual(find_orders(str(2 ** 63 - 1), session_factory=self.sf), [])


if __name__ == '__main__':
    unittest.main()
