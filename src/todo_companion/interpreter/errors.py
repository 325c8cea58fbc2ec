# src/todo_companion/interpreter/errors.py

"""
Error taxonomy of the interpreter.

Only InputError, CredentialError and TransportError stop a request.
Action errors are reported per action and the batch continues.
MalformedResponseError never leaves the response parser.
"""

from __future__ import annotations


class InterpreterError(Exception):
    """Base class for interpreter errors."""


class InputError(InterpreterError):
    """The prompt is empty or unusable."""


class CredentialError(InterpreterError):
    """No API key could be resolved for the LLM service."""


class TransportError(InterpreterError):
    """The LLM call failed (network, auth, rate limit, no usable model)."""


class MalformedResponseError(InterpreterError):
    """The model content is not the expected JSON object."""


class ActionError(InterpreterError):
    """Base class for errors that skip a single action."""


class ActionValidationError(ActionError):
    """A required field is missing or a value (status, priority, date) is invalid."""


class ReferenceNotFoundError(ActionError):
    """The action refers to a notebook or task that doesn't exist."""
