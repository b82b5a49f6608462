"""Infrastructure layer — SQLite journal store, media directory, renderer.

This layer depends on stdlib and third-party libs (SQLAlchemy, anyio).
It must never import from services, mcp, commands, or output.
"""
