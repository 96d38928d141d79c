"""User interaction helpers."""

from .prompt import prompt_secret

__all__ = ["prompt_secret"]
