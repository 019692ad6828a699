"""Service layer helpers for external integrations."""
