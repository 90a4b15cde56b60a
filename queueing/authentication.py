"""
Token authentication for the queue API.

Kept in its own module so ``REST_FRAMEWORK`` settings can import it
without pulling in any views.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication with the ``Authorization: Token <key>`` header."""

    keyword = 'Token'
