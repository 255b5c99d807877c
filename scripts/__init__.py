"""
Scripts Package.

This package contains operational scripts for the report
intelligence engine.

Scripts:
- run_report_intelligence: Operator CLI (train, predict, insights)
"""

# Scripts are meant to be run directly, not imported
