"""Structured output for CLI commands.

Non-streaming commands print one JSON envelope to stdout:

    {"success": bool, "data": {...}, "error": str | null,
     "meta": {"version": "response-v2"}}

Streaming commands write response text to stdout as it arrives and
diagnostics to stderr.
"""

import json
import sys
from typing import Any, Dict, Mapping, NoReturn, Optional

import click

from vibe_relay.core.errors import error_to_response

RESPONSE_VERSION = "response-v2"


def _emit(payload: Dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def emit_success(data: Optional[Mapping[str, Any]] = None) -> None:
    _emit(
        {
            "success": True,
            "data": dict(data or {}),
            "error": None,
            "meta": {"version": RESPONSE_VERSION},
        }
    )


def emit_error(
    message: str,
    *,
    code: str = "INTERNAL_ERROR",
    error_type: str = "internal",
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> NoReturn:
    """Print an error envelope and exit with status 1."""
    data: Dict[str, Any] = {"error_code": code, "error_type": error_type}
    if remediation:
        data["remediation"] = remediation
    if details:
        data["details"] = dict(details)
    _emit(
        {
            "success": False,
            "data": data,
            "error": message,
            "meta": {"version": RESPONSE_VERSION},
        }
    )
    sys.exit(1)


def emit_exception(exc: Exception, remediation: Optional[str] = None) -> NoReturn:
    """Print the envelope registered for ``exc`` and exit with status 1.

    Unregistered exception types are re-raised.
    """
    response = error_to_response(exc)
    if response is None:
        raise exc
    if remediation:
        response["data"]["remediation"] = remediation
    _emit(response)
    sys.exit(1)


def emit_text(text: str) -> None:
    """Write a streamed fragment to stdout without a trailing newline."""
    click.echo(text, nl=False)


def emit_diagnostic(message: str) -> None:
    click.echo(message, err=True)
