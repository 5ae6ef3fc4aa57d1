"""Pydantic Schemas — request bodies and response views for the internal API.

Invariants:
    - Schemas validate shape only; domain validation lives in core/
"""
