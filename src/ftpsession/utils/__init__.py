"""Utility module for ftpsession.

This module provides cross-cutting utilities:
- Logging: Configured logging with PII redaction
- Validators: Input validation for hosts, ports, timeouts, paths and offsets
"""
