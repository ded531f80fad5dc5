"""auth/ -- Credential and session-authority package for Courtside.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. Configuration values arrive by
construction; api/ imports from auth/, not the other way around.
"""
