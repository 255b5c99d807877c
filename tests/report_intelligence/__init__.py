"""
Tests for the Report Intelligence Engine.

This package contains tests for:
- Scoring primitives (priority, sentiment, tags, classification)
- Duplicate detection
- Risk area clustering
- Resource prediction
- Store implementations (in-memory and SQL)
- Configuration and payload validation
- The service facade
"""
