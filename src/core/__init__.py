"""Core domain package for cargoscope.

Core contains the queue state machine, reconciliation and eligibility logic
without any marketplace, Telegram or storage-specific code, keeping the
business logic portable.
"""
