"""
Infrastructure layer package.

Contains concrete implementations (adapters) of the ports
defined in the domain layer. This is where databases, APIs,
price feeds, and webhook integrations live.
"""
