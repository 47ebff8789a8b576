"""Core Layer - request schemas, validation, path resolution, document assembly.

Invariants:
    - No module in core/ imports from api/ or infrastructure/
    - Nothing here touches the transport: no Request, no Response, no IO
    - Every function is deterministic for a given declaration
"""
