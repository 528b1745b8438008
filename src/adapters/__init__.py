"""Adapters package for lgtm: Slack and GitHub integrations."""
