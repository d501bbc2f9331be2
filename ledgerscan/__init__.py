"""ledgerscan: count the unique holders of an ERC-721 collection and sum their balances."""

__version__ = "0.1.0"
