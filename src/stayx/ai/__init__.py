"""Generative-text features: prompts, parsing and fallbacks."""
