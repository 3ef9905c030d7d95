"""Bulk message dispatch: normalisation, validation, paced delivery and reporting."""

from .service import BulkSendCommand, MessageSender, SequentialDispatcher

__all__ = ["BulkSendCommand", "MessageSender", "SequentialDispatcher"]
