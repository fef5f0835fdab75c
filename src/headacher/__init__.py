"""Headacher — personal headache and timeline tracking API.

Accounts sign in with an Ethereum wallet (Sign-In with Ethereum) or a
federated ID token, can link the other identity type afterwards, and
own two kinds of records: headaches and free-form timeline events.
"""

__version__ = "0.2.0"
