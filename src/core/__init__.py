"""Core domain package for lgtm.

Core contains matching, reference extraction, and approval logic without any
Slack or GitHub SDK code, keeping the business logic portable.
"""
