"""Test suite for formstrategy.

This package contains tests for:
- Schema creation and rule activation
- Client-side and server-side validation strategies
- The rule validator (parsing, rules, messages)
- The message catalog and language handling
"""
