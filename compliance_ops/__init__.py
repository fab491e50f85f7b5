"""
Compliance operations services.

Block-explorer access for the compliance portal:
- Rate-governed dispatch to quota-limited explorer APIs
- Etherscan account, contract, token and proxy lookups
- TRON wallet activity feed
"""

__version__ = "1.0.0"
