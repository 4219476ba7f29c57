"""Typed input and result records."""
