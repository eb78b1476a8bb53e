"""Search an IMAP mailbox and export matching messages to disk."""

__version__ = "0.1.0"
