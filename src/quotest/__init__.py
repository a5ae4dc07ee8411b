"""Quotation pricing and real-cost reconciliation for a furniture workshop."""

from .errors import InvalidInputError, NoMatchError, QuotationError, UnknownProductError
from .matching import ExactNameMatcher, HeuristicNameMatcher
from .pricing import InMemoryCatalog, LaborRates, price_catalog_item, price_item, price_line_item
from .quotation import aggregate_quotation, price_quotation
from .reconciliation import apply_real_costs, reconcile_line_item, reconcile_quotation
from .profitability import summarize_profitability

__all__ = [
    "QuotationError",
    "InvalidInputError",
    "UnknownProductError",
    "NoMatchError",
    "ExactNameMatcher",
    "HeuristicNameMatcher",
    "InMemoryCatalog",
    "LaborRates",
    "price_line_item",
    "price_catalog_item",
    "price_item",
    "aggregate_quotation",
    "price_quotation",
    "reconcile_line_item",
    "reconcile_quotation",
    "apply_real_costs",
    "summarize_profitability",
]
