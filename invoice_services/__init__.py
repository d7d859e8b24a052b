"""
Module: invoice_services
Responsibility:
    Stateful shell around the pure engines: invoice editing sessions,
    order snapshots from the order feed and draft persistence.

Architecture position:
    Services -- may import invoice_engines, invoice_kernel and
    invoice_config. Nothing below this layer imports it.
"""

from invoice_services.draft_store import (
    DraftStore,
    InMemoryDraftStore,
    InvoiceDraft,
    decode_draft,
    draft_key,
    encode_draft,
)
from invoice_services.invoice_editor import InvoiceEditor, SubmissionOutcome
from invoice_services.order_feed import OrderSnapshot, editable_orders

__all__ = [
    "DraftStore",
    "InMemoryDraftStore",
    "InvoiceDraft",
    "InvoiceEditor",
    "OrderSnapshot",
    "SubmissionOutcome",
    "decode_draft",
    "draft_key",
    "editable_orders",
    "encode_draft",
]
