"""
Bond Auction

Sealed-bid, uniform-price auction for a fixed supply of a tokenized bond:
- Commit-reveal bidding with issuer-encrypted bid copies
- Single uniform clearing price with pro-rata marginal allocation
- Escrowed settlement against a payment token
"""

__version__ = "0.1.0"
