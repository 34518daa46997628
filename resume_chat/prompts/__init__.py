"""Prompt templates for LLM interactions.

Modules:
    extraction: System prompt, section focus and guidance for model turns
"""
