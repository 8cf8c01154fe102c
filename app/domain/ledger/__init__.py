"""
Domain layer for the ledger bounded context.

Contains entities, the account ledger and holdings book invariants,
the valuation history replay, analytics, ports (ABCs) and errors.
No framework imports, no IO.
"""
