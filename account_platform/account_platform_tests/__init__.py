"""
Tests for the account service package.
"""
