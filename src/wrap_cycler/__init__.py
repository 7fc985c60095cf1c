"""wrap-cycler: automated wrap/unwrap cycling across a fleet of EVM wallets.

Each configured wallet is driven through a bounded number of cycles that
deposit the chain's native asset into its wrapped ERC-20 contract and
withdraw it again, with balance-aware amounts, fee fallbacks, rate-limit
backoff and randomized pacing between transactions.
"""

__version__ = "0.1.0"
