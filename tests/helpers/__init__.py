"""Test helpers for mailsub."""
