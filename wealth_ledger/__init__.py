"""
Wealth Ledger

Tracks investment assets and compounds their value daily from the principal,
interest rate and investment date supplied by the user.
"""

__version__ = "1.0.0"
