"""
Tests for payments app.

This package contains test modules for:
- test_models.py: PaymentRecord fields, references and query helpers
- test_state_transitions.py: PaymentRecord state machine
- test_optimistic_locking.py: Compare-and-set status writes
- test_locks.py: DistributedLock
- test_views.py: API endpoint tests
- test_tasks.py: Celery maintenance tasks
- test_integration.py: Payment journeys from initialization to settlement

Usage:
    pytest payments/tests/
    pytest payments/tests/test_views.py
"""
