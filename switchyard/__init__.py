"""Switchyard - typed route trees that validate requests and describe themselves.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Explicit imports from submodules, no star exports
"""
