"""Call Event Store — per-call lifecycle, event log and usage accounting.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""

__version__ = "0.1.0"
