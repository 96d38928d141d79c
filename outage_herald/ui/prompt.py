"""Operator prompts used at startup."""

from __future__ import annotations

import typer


def prompt_secret(message: str) -> str:
    return typer.prompt(message, hide_input=True)


__all__ = ["prompt_secret"]
