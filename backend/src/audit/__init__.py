"""Audit trail: lifecycle events written to audit_log."""
