"""Core Layer — pure binder planning logic, no IO, no async, no persistence.

Invariants:
    - No module in core/ imports from services/ or infrastructure/
    - All functions are pure and deterministic (timestamps are injectable)

Design Decisions:
    - Functional core separated from imperative shell: services/ performs the
      writes that core/ only plans
"""
