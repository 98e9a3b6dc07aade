"""Test suite for nisync.

This package contains tests for the indicator synchronization workflow:
- Unit tests for individual modules
- Integration tests for complete download-edit-upload workflows
"""
