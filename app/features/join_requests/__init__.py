"""
Join-by-code workflow.

A user submits an organization's join code, creating a pending request; an
admin approves (creating the membership) or rejects it exactly once.
"""
