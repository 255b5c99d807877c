"""
Test suite for the civic report intelligence engine.
"""
