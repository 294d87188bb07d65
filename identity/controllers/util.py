"""Helpers shared by the controllers."""

from typing import Any, Dict, List, Tuple

from werkzeug.exceptions import BadRequest
from wtforms import Form

from .. import domain

ResponseData = Tuple[dict, int, dict]
"""Envelope fields (``message``, ``data``, ``meta``), status and headers."""


class ValidationFailed(BadRequest):
    """Request body failed validation. Carries per-field errors."""

    def __init__(self, details: Dict[str, List[str]]) -> None:
        super(ValidationFailed, self).__init__('Validation failed')
        self.details = details


def validate(form: Form) -> None:
    """Raise :class:`.ValidationFailed` unless ``form`` validates."""
    if not form.validate():
        raise ValidationFailed({field.name: list(field.errors)
                                for field in form if field.errors})


def user_to_json(user: domain.User) -> Dict[str, Any]:
    """The public projection of a user. Never includes credentials."""
    data = domain.to_dict(user)
    return {
        'id': data['user_id'],
        'email': data['email'],
        'firstName': data['first_name'],
        'lastName': data['last_name'],
        'avatar': data['avatar'],
        'role': data['role'],
        'isActive': data['is_active'],
        'isEmailVerified': data['is_email_verified'],
        'lastLoginAt': data['last_login_at'],
        'createdAt': data['created_at'],
    }


def session_to_json(pair: domain.TokenPair) -> Dict[str, Any]:
    return {
        'access_token': pair.access_token,
        'refresh_token': pair.refresh_token,
        'token_type': pair.token_type,
        'expires_in': pair.expires_in,
    }
