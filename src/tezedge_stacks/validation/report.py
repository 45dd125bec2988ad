"""
tezedge_stacks.validation.report

Finding and report types returned by validation.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

Severity = Literal["error", "warning"]


class Finding(BaseModel):
    code: str
    severity: Severity
    service: str | None = None
    message: str

    def __str__(self) -> str:
        where = f"[{self.service}] " if self.service else ""
        return f"{self.severity.upper()} {self.code}: {where}{self.message}"


class StackValidationError(Exception):
    def __init__(self, report: ValidationReport) -> None:
        super().__init__(f"{len(report.errors)} validation error(s): " + "; ".join(str(f) for f in report.errors))
        self.report = report


class ValidationReport(BaseModel):
    stack: str | None = None
    findings: list[Finding] = Field(default_factory=list)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "error"]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "warning"]

    @property
    def ok(self) -> bool:
        return not self.errors

    def codes(self) -> set[str]:
        return {f.code for f in self.findings}

    def raise_for_errors(self) -> None:
        if not self.ok:
            raise StackValidationError(self)

    def summary(self) -> dict[str, object]:
        return {
            "stack": self.stack,
            "ok": self.ok,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
        }
