"""Pydantic Schemas — validation for data crossing the core boundary.

Invariants:
    - Schemas validate at system boundary (fetched item records, user-chosen configuration)
    - Domain enums from core/ used for enum fields

Design Decisions:
    - Separate from core dataclasses: schemas are input contracts, core types are plan state
"""
