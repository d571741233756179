"""Wallet-connected client for a shared on-chain GIF list."""

__version__ = "0.1.0"
