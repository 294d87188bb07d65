"""Service layer: credential store, engines and the identity use cases."""

from typing import Mapping

from .identity import IdentityService
from .mail import Notifier
from .otp import OTPEngine
from .passwords import PasswordHasher
from .tokens import TokenEngine


def get_identity_service(config: Mapping) -> IdentityService:
    """Wire up an :class:`.IdentityService` from application settings."""
    return IdentityService(
        otps=OTPEngine.from_config(config),
        tokens=TokenEngine.from_config(config),
        notifier=Notifier.from_config(config),
        passwords=PasswordHasher.from_config(config)
    )
