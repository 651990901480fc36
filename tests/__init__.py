"""Tests for helm-deploy."""
