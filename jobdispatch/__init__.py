"""
Background job dispatch and status tracking.
"""
