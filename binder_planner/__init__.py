"""Binder Planner — layout, capacity and set-placement planning for paged binders.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports
"""
