"""
Authentication utilities: password hashing and credential checks.
"""
from werkzeug.security import generate_password_hash, check_password_hash

MIN_PASSWORD_LENGTH = 6


class AuthError(ValueError):
    """Credentials were rejected; the message is safe to show to the user."""


def hash_password(password: str) -> str:
    """
    Hash a password using werkzeug's security functions.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        password_hash: Stored password hash
        password: Plain text password to verify

    Returns:
        True if password matches, False otherwise
    """
    return check_password_hash(password_hash, password)


def normalize_email(email) -> str:
    return (email or "").strip().lower()


def validate_credentials(email: str, password: str) -> str:
    """
    Check the fields of a sign-up form.

    Args:
        email: Address the account is registered under
        password: Plain text password

    Returns:
        The normalized email address

    Raises:
        AuthError: a field is missing or the password is too short
    """
    email = normalize_email(email)
    if not email or not password:
        raise AuthError("Email and password are required")
    if "@" not in email:
        raise AuthError("Enter a valid email address")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return email
