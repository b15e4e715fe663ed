"""Shared building blocks: constants, document types and persistence helpers."""
