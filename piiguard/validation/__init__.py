"""Validation package.

One structural validator per PII field type.  Each validator checks a single
candidate value and reports whether it is structurally valid, together with
a classification the detection engine uses to pick a confidence level.

All validators follow the same contract::

    def validate(self, candidate: str) -> ValidationResult:
        ...

Validators never log the candidate value itself.
"""
