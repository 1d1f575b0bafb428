"""
Service layer abstraction.

Each service encapsulates business logic for a domain and talks to the
SQLite store defined in ``core.db``, so API handlers never issue SQL
themselves.
"""
