"""
Wellspring Backend - Application Package
=========================================

Package map:
    app.routes      HTTP surface (convert, content fetch, sessions, health)
    app.services    converter, session store, remote content loader
    app.schemas     pydantic contracts: session document, session API
    app.models      SQLAlchemy rows (sessions table)
    app.middleware  request id, access log, rate limit
    app.auth        caller identity dependency

Dependencies only point downwards (routes → services → models/schemas →
database). The converter touches neither the database nor the network and
can be used on its own:

    from app.services.converter import convert
    document, warnings = convert(text)
"""

__version__ = "1.0.0"
