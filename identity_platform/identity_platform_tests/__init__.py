"""
identity_service tests

Covers the identity service backend:

- Credential store and password hashing (`store.py`, `passwords.py`)
- Token issuance and verification (`tokens.py`)
- Request authentication dependency (`dependencies.py`)
- HTTP routes for signup, login, refresh and password reset
"""
