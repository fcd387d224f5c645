"""Plan timeline - recurring plan scheduling and interval conflict engine.

This package provides:
- Calendar arithmetic primitives (Monday-start weeks, month-add)
- Recurrence expansion of a plan over a bounded horizon
- Minute-of-day conflict detection and drag clamping
- Group mutation of recurring occurrences without touching history
"""
