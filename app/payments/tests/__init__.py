"""
Tests for payments app.

- test_state_transitions.py: FSM transition tables for Order, Escrow, Dispute, Payout
- test_order_service.py, test_escrow_service.py, test_dispute_service.py,
  test_payout_service.py: settlement services
- test_locks.py: Redis and row locks
- test_views.py: API endpoint tests

Webhook handler, task and endpoint tests live in payments/webhooks/tests/.

Usage:
    pytest payments/tests/
    pytest payments/tests/test_payout_service.py
"""
