"""Services Layer — async orchestration of fetch, plan and commit.

Invariants:
    - Services call pure planners first and write only after a plan validates
    - Every persistence call goes through a Protocol port (core/repository_protocols.py)

Design Decisions:
    - One service per user-facing flow (set placement, history navigation)
"""
