"""Gemini API key validator service."""
