# Vault - PIN Setup Validation
#
# Setup-flow checks run before a PIN ever reaches the vault.

from typing import Optional

from .errors import PinMismatchOnConfirm, PinTooShort

MIN_PIN_LENGTH = 4


def validate_new_pin(pin: Optional[str], confirm: Optional[str]) -> str:
    """
    Verify a newly chosen PIN and its confirmation.

    Requirements:
    - At least 4 characters
    - Confirmation matches exactly

    Returns:
        The validated PIN

    Raises:
        PinTooShort, PinMismatchOnConfirm
    """
    if pin is None or len(pin) < MIN_PIN_LENGTH:
        raise PinTooShort()
    if confirm is None or pin != confirm:
        raise PinMismatchOnConfirm()
    return pin
