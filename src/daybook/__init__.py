"""Daybook - back office for a single restaurant.

Daily sales per channel, expenses, a personal ledger, POS orders bucketed
into business days and KPI summaries with an expense forecast.
"""

__version__ = "0.1.0"
