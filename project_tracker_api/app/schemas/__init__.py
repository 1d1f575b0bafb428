"""
Pydantic schema definitions for API payloads.

Each domain (users, projects, events, commit counts) defines its own
Pydantic models for request and response bodies.  Schemas are
separated from the SQL tables to decouple API representation from
persistence.
"""
