"""Collaborator services used by the translation job orchestrator."""
