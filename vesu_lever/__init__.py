"""Leveraged position sizing and atomic call composition for Vesu on Starknet."""

__version__ = "0.1.0"
