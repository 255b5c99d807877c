"""
Tests for core infrastructure (clock, exceptions).
"""
