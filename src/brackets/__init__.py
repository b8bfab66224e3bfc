"""
Tournament bracket engine: seeding, bracket construction, dual-submission
score reconciliation and bracket progression.
"""
