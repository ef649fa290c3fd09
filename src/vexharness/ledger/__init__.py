"""
Ledger - connection layer for the VEX harness.

Provides the read-only JSON-RPC client and authenticated sessions that
sign state-changing calls against NEAR contracts.

Uses httpx for view queries and py-near for signing and submission.
"""
