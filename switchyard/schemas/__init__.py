"""Pydantic Schemas - documented shapes for the info object and error envelope.

Design Decisions:
    - Schemas are public contracts; services pass them as response schemas
"""
