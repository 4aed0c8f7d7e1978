"""
mailsub - Microsoft Graph mail subscription lifecycle manager.

Creates, persists, queries and deletes mailbox change-notification
subscriptions, keeping the Graph subscription and its PostgreSQL row in step.
"""

__version__ = "1.0.0"
