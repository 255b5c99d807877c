"""
Tests for operator scripts.
"""
