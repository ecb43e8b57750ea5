"""Utility functions for the Rifa Escolar platform."""

import secrets
import string

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_unique_code(prefix='', length=10):
    """Generate a random code with a given prefix, e.g. ``TEMP-4F7K2Q9XBA``."""
    unique_id = ''.join(secrets.choice(_CODE_ALPHABET) for _ in range(length))
    return f"{prefix}{unique_id}"


def parse_bearer_token(request):
    """Return the token from an ``Authorization: Bearer <token>`` header, or None."""
    header = request.META.get('HTTP_AUTHORIZATION', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token:
        return None
    return token.strip()
