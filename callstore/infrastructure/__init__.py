"""Infrastructure Layer — database access, locking, and logging setup.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Every storage failure is mapped to TransientStorageError (core/errors.py)
"""
