"""
Shared utilities for the Agency Membership API
"""
