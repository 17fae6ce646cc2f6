"""iTradeBook daily P&L report backend."""

__version__ = "0.1.0"
