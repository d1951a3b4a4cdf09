"""
Olivia Gold Database Guard Test Suite

This package contains all tests for the database guard.
Tests are organized into:
- unit/: Tests for individual functions, the gate and the CLI
"""
