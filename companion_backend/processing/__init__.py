"""
Processing layer
Timeframe aggregation, categorization, pattern detection, scoring and the
analysis pipeline
"""
