"""
Order Desk storage - customers, products, special prices and orders in SQLite.
"""
from .order_db import DuplicateRecordError, OrderDB, RecordNotFoundError

__all__ = ['OrderDB', 'DuplicateRecordError', 'RecordNotFoundError']
