# ===== agendando/utils/validation.py =====
from email_validator import EmailNotValidError, validate_email

from agendando.core.exceptions import InvalidInputException


def normalize_email(value: str) -> str:
    """Validate syntax (no DNS lookup) and return the normalized address"""
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise InvalidInputException(f"Invalid email address: {e}", details={"email": value})
