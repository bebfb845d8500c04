"""
Groupie Edge
============

HTTP edge server for the Groupie Tracker front-end:

    - relays /api/*-proxy requests to the Groupie Trackers API with a
      permissive cross-origin header
    - registers users and checks their passwords against a MySQL store
    - serves the static front-end

Start with ``groupie-edge`` or ``uvicorn groupie_edge.main:app``.
"""

__version__ = "1.0.0"
