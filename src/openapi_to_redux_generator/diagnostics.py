"""Non-fatal generation diagnostics."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass


class DiagnosticKind(enum.StrEnum):
    """Categories of recoverable problems reported by the pipeline stages."""

    MALFORMED_INPUT = "malformed-input"
    UNRESOLVABLE_REFERENCE = "unresolvable-reference"
    DOMAIN_RESOLUTION_EXHAUSTED = "domain-resolution-exhausted"
    UNSUPPORTED_SCHEMA = "unsupported-schema"


@dataclass(frozen=True)
class Diagnostic:
    """One recoverable problem, attributed to the name that triggered it."""

    kind: DiagnosticKind
    subject: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind}] {self.subject}: {self.message}"


def malformed(subject: str, message: str) -> Diagnostic:
    """Build a malformed-input diagnostic."""
    return Diagnostic(kind=DiagnosticKind.MALFORMED_INPUT, subject=subject, message=message)


def unresolvable(subject: str, reference: str) -> Diagnostic:
    """Build an unresolvable-reference diagnostic."""
    return Diagnostic(
        kind=DiagnosticKind.UNRESOLVABLE_REFERENCE,
        subject=subject,
        message=f"reference to undeclared type {reference!r}; using the name as-is",
    )


def unsupported(subject: str, message: str) -> Diagnostic:
    """Build an unsupported-schema diagnostic."""
    return Diagnostic(kind=DiagnosticKind.UNSUPPORTED_SCHEMA, subject=subject, message=message)


def dedupe(diagnostics: Iterable[Diagnostic]) -> tuple[Diagnostic, ...]:
    """Drop repeated diagnostics while keeping first-seen order."""
    seen: set[Diagnostic] = set()
    ordered: list[Diagnostic] = []
    for diagnostic in diagnostics:
        if diagnostic in seen:
            continue
        seen.add(diagnostic)
        ordered.append(diagnostic)
    return tuple(ordered)
