"""Protocol interfaces for the leverage pipeline's external capabilities."""
from .chain import PoolReader
from .pool_source import PoolSource, PositionSource
from .quote_source import QuoteSource
from .submitter import Submitter

__all__ = ["PoolReader", "PoolSource", "PositionSource", "QuoteSource", "Submitter"]
