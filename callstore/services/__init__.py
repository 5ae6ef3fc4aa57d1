"""Services Layer — the five call-event components.

Invariants:
    - Every mutation goes through CallRecordStore.ensure_and_mutate
    - Validation runs before the store is touched (no partial writes)
"""
