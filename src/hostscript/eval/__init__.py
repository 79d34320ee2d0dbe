"""Evaluator helper modules for the hostscript runtime."""

__all__ = [
    "access",
    "blocks",
    "calls",
    "classes",
    "common",
    "construct",
    "control",
    "enclosing",
    "expr",
]
