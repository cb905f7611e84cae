"""Validator adapters for Case-Weaver."""

from src.adapters.validators.required_elements import RequiredElementValidator

__all__ = ["RequiredElementValidator"]
