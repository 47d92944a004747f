"""Policy package.

Compliance rules per PII type, the evaluator that turns a (type, operation)
pair into an allow/deny decision, and the named presets (strict,
permissive, gdpr, ccpa) that seed an engine.
"""
