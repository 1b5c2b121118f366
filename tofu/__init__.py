"""Tofu — lead discovery and deep research over Exa, Jira and Confluence."""

__version__ = "0.1.0"
