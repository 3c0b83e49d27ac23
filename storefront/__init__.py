"""Storefront shell.

Derives the navigable route table from the backend catalog, keeps cart
state consistent across tabs and gates the account route on the session.
"""

__version__ = "0.1.0"
