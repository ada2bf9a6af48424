"""Test infrastructure - mocks shared by the hub tests.

This package contains test support code, NOT actual tests.
"""
