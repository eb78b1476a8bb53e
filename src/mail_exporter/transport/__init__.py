"""Transport adapters for the IMAP mailbox."""

from .imap_client import CONNECT_TIMEOUT_SECONDS, MailSession, open_connection

__all__ = ["CONNECT_TIMEOUT_SECONDS", "MailSession", "open_connection"]
