"""Remote Ledger Client adapters.

JSON-RPC transport and the ERC-721 implementation of the LedgerClient port.
"""
