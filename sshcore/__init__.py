"""SSH packet ciphers, authentication method sets and asyncio channel primitives."""

__version__ = "0.1.0"