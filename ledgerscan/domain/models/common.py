"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like item identifiers, owner keys and
balances, ensuring consistency and type safety between the pipelines.
"""

from typing import NewType, Set

# === Core Value Objects ===

# Using NewType for semantic clarity, they are plain ints/strings at runtime.
ItemId = NewType("ItemId", int)          # Sequential identifier of a collection entity (e.g. token id)
OwnerKey = NewType("OwnerKey", str)      # Deduplication key derived from an item (e.g. account address)
Wei = NewType("Wei", int)                # Balance in the smallest indivisible unit
StageName = NewType("StageName", str)    # Name of a pipeline stage ('holders', 'balances')

# === Owner Resolution Context ===
OwnerSet = Set[OwnerKey]                 # Unique, case-normalized owner keys

# === Pipeline Stages ===
HOLDERS_STAGE = StageName("holders")
BALANCES_STAGE = StageName("balances")
