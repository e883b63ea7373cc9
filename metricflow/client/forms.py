"""Client-side form validation.

Each ``validate`` returns a mapping of field name to message; an empty
mapping means the form may be submitted.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass

from ..schemas import Category, METRIC_NAME_MAX_LENGTH, UNIT_MAX_LENGTH

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LENGTH = 8
CATEGORY_VALUES = tuple(c.value for c in Category)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def is_strong_password(password: str) -> bool:
    """At least eight characters with an upper-case letter, a lower-case letter and a digit."""

    if len(password) < PASSWORD_MIN_LENGTH:
        return False
    if not re.search(r"[A-Z]", password):
        return False
    if not re.search(r"[a-z]", password):
        return False
    return bool(re.search(r"[0-9]", password))


@dataclass
class SignupForm:
    full_name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    business_name: str = ""

    def validate(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if len(self.full_name.strip()) < 2:
            errors["full_name"] = "Please enter your full name"
        if not is_valid_email(self.email):
            errors["email"] = "Please enter a valid email address"
        if not is_strong_password(self.password):
            errors["password"] = "Password must be at least 8 characters with 1 uppercase, 1 lowercase, and 1 number"
        if self.password != self.confirm_password:
            errors["confirm_password"] = "Passwords do not match"
        return errors


@dataclass
class LoginForm:
    email: str = ""
    password: str = ""

    def validate(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not is_valid_email(self.email):
            errors["email"] = "Please enter a valid email"
        if not self.password:
            errors["password"] = "Please enter your password"
        return errors


@dataclass
class ForgotPasswordForm:
    email: str = ""

    def validate(self) -> dict[str, str]:
        if not is_valid_email(self.email):
            return {"email": "Please enter a valid email address"}
        return {}


@dataclass
class MetricForm:
    metric_name: str = ""
    current_value: float = 0.0
    target_value: float = 0.0
    unit: str = ""
    category: str = Category.SALES.value

    def validate(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        name = self.metric_name.strip()
        if not name:
            errors["metric_name"] = "Metric name is required"
        elif len(name) > METRIC_NAME_MAX_LENGTH:
            errors["metric_name"] = f"Metric name must be {METRIC_NAME_MAX_LENGTH} characters or fewer"
        if self.current_value < 0:
            errors["current_value"] = "Current value must be 0 or greater"
        if self.target_value <= 0:
            errors["target_value"] = "Target value must be greater than 0"
        unit = self.unit.strip()
        if not unit:
            errors["unit"] = "Unit is required"
        elif len(unit) > UNIT_MAX_LENGTH:
            errors["unit"] = f"Unit must be {UNIT_MAX_LENGTH} characters or fewer"
        if self.category not in CATEGORY_VALUES:
            errors["category"] = "Please choose a category"
        return errors

    @property
    def exceeds_target(self) -> bool:
        return self.target_value > 0 and self.current_value > self.target_value

    def to_payload(self) -> dict[str, object]:
        payload = asdict(self)
        payload["metric_name"] = self.metric_name.strip()
        payload["unit"] = self.unit.strip()
        return payload


__all__ = [
    "EMAIL_PATTERN",
    "ForgotPasswordForm",
    "LoginForm",
    "MetricForm",
    "SignupForm",
    "is_strong_password",
    "is_valid_email",
]
