"""Presentation layer for the eventing bounded context."""
