"""Bucketball - wagering game backend with a wallet-capped round settlement engine."""

__version__ = "0.1.0"
