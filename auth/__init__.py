"""auth/ -- Credential and session core for CredCore.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. api/ and main.py import from auth/,
not the other way around. Only auth/dependencies.py may import fastapi.
"""
