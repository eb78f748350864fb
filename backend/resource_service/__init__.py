"""
Resource Service: a generic, filter-driven data-access layer over SQLAlchemy.

Structure:
- models/: declarative Base plus timestamp, soft delete and serialization mixins
- services/: ResourceService and its CRUD building blocks
- dependencies.py: FastAPI dependency for listing query parameters
"""
