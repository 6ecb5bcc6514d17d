import re

from exceptions.cart import InvalidEmailException

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    """
    Trim and lowercase an email address, then validate its shape.

    Raises:
        InvalidEmailException: If the address is not of the form local@domain.tld
    """
    normalized = email.strip().lower() if isinstance(email, str) else ""
    if not EMAIL_PATTERN.match(normalized):
        raise InvalidEmailException(str(email))
    return normalized
