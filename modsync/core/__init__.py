"""
Core application engine for synchronizing a profile.

This package contains the primary logic. The `ResolutionEngine` resolves
every mod and its dependencies concurrently, the reconciler brings the output
directory in line with the result, and `upgrade` ties the steps together.
"""
