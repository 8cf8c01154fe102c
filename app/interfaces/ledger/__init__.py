"""
HTTP interface for the ledger bounded context.

Routers, Pydantic schemas and dependency wiring.
"""
