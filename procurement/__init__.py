"""
Procurement marketplace API.

Schools post bid requests, suppliers submit offers and each bid item is
awarded either by the school or by the daily auto-selection sweep.
"""

__version__ = '1.0.0'
