"""Shared ErgoScript language vocabulary."""
