"""Shared utilities for storagedriver."""
