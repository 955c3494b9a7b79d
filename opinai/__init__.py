"""Agent tools, AI reply parsing and repository analysis for AI-driven bug triage and PR review."""

__version__ = "0.1.0"
__all__ = ["config", "aijson", "responses", "tools", "verdicts", "analysis"]