"""API Layer - node tree, dispatch chain and the ASGI host.

Invariants:
    - The tree is assembled once at startup and never mutated per request
    - Starlette owns requests and responses; this layer only routes between them
"""
