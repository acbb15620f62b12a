"""Infrastructure Layer — cross-cutting concerns used by the shell.

Invariants:
    - Infrastructure never imports domain logic from core/ beyond plain types
    - Nothing here holds module-level mutable state; instances are injected
"""
