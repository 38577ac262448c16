"""
Services for the redirect frontend.

Link resolution, metadata enrichment, the redirect controller and the
session stores live here, kept apart from the HTTP endpoints.
"""
