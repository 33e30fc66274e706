"""auth/ -- Account core for Overseer: credential store, validation, tokens, and the auth gate.

Layer rule: auth/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
