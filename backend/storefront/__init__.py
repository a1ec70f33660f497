"""Storefront: a small product catalog web application.

The package exposes the FastAPI application (`storefront.main:app`),
its models, services and repositories, and the management commands in
`storefront.manage`. Individual modules contain the concrete
implementations and documentation.
"""

__version__ = "0.1.0"
