"""Validate Before You Build: AI product-idea validation service."""

from buildcheck.app import create_app

__all__ = ["create_app"]
