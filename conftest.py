"""
Pytest configuration shared by the whole repository.
Forces the in-memory SQLite configuration before any app module is imported.
"""
import os

# Set testing environment before importing app
os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENTITLEMENT_BACKEND", "plans")
