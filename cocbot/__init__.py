"""cocbot: a Signal chat bot for Call of Cthulhu tables.

Looks up rules terms, keeps user-defined aliases for them and resolves
resistance checks.
"""

__version__ = "7.0.0"
