"""Tests for the payments app: fees, models, orchestration, tasks and API views."""
