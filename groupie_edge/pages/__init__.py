"""
Pages Package
=============

Serves the browser front-end: /static/* assets and the fixed HTML pages.

- resolver.py: FileResolver, logical path -> file on disk
- routes.py: pages_router with the page table
"""

from .resolver import FileResolver
from .routes import pages_router

__all__ = ["FileResolver", "pages_router"]
