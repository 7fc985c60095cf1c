"""Chain access for wrap-cycler.

Provides chain presets, wallet credential stores (``.env`` and encrypted
keystores) and the async Web3 client that reads balances and submits
deposit/withdraw transactions against the wrapped-token contract.
"""
