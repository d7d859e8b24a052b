"""
invoice_services.invoice_editor -- Stateful invoice editing session.

Responsibility:
    Holds the mutable state of one create- or edit-invoice form (selected
    products and services, quantity text, payment rows, field errors,
    customer details) and drives the pure engines on every change:
    catalog resolution, pricing, payment amount derivation, incremental
    balance checks and the final submission validation.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Catalog and order snapshots come in from the caller; the only
    side effects are draft persistence through an injected ``DraftStore``
    and logging.

Invariants enforced:
    - Settled orders (any previous ``full`` payment) cannot be opened.
    - Row identifiers are generated here, never inside an engine.
    - Stock ceilings on edit are grandfathered from the order snapshot.

Failure modes:
    - OrderSettledError: the order snapshot is already fully paid.
    - PaymentEntryNotFoundError: a payment edit names an unknown row.
    - UnknownPaymentMethodError: a method edit names an unsupported method.
    - A draft that cannot be decoded is logged and discarded.

Usage:
    from invoice_services import InvoiceEditor, InMemoryDraftStore

    editor = InvoiceEditor(products, services, draft_store=InMemoryDraftStore())
    editor.select("tyre-1")
    editor.set_quantity("tyre-1", "2")
    entry_id = editor.payments[0].entry_id
    editor.set_payment_field(entry_id, "status", "full")
    outcome = editor.submit()
    if outcome.accepted:
        order_client.create(outcome.payload)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import uuid4

from invoice_config import get_active_config
from invoice_engines.catalog import (
    OrderLine,
    index_catalog,
    resolve_lines,
    step_quantity,
)
from invoice_engines.payments import (
    add_payment_row,
    new_payment_entry,
    on_amount_change,
    remove_payment_row,
    update_payment_field,
)
from invoice_engines.pricing import price_lines
from invoice_engines.reconciliation import ReconciliationResult, reconcile
from invoice_engines.submission import build_order_payload, payload_amounts
from invoice_engines.validation_types import (
    PAYMENT_TOTAL_FIELD,
    PRODUCTS_FIELD,
    FieldError,
    payment_amount_field,
    payment_status_field,
)
from invoice_kernel.domain.order import CatalogItem, CustomerDetails, ItemKind, PaymentEntry
from invoice_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from invoice_kernel.exceptions import (
    DraftDecodeError,
    OrderSettledError,
    PaymentEntryNotFoundError,
)
from invoice_kernel.logging_config import LogContext, get_logger
from invoice_services.draft_store import (
    DraftStore,
    InvoiceDraft,
    decode_draft,
    draft_key,
    encode_draft,
)
from invoice_services.order_feed import OrderSnapshot

logger = get_logger("services.invoice_editor")


def _new_entry_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of ``InvoiceEditor.submit``.

    ``payload`` is the create/update body when the submission validated,
    otherwise None and ``result.validation`` carries the errors.
    """

    result: ReconciliationResult
    payload: dict[str, Any] | None = None

    @property
    def accepted(self) -> bool:
        return self.payload is not None


class InvoiceEditor:
    """
    One invoice form, new or editing an existing order.

    Contract:
        Every mutator updates the in-memory state, refreshes the affected
        field errors and (with a draft store) saves a draft. Reading
        ``view()`` never mutates anything.

    Non-goals:
        - Does NOT call the order service; ``submit`` returns the payload.
        - Does NOT fetch catalogs; snapshots are passed in.
    """

    def __init__(
        self,
        products: Mapping[str, CatalogItem] | Iterable[CatalogItem],
        services: Mapping[str, CatalogItem] | Iterable[CatalogItem] = (),
        *,
        order: OrderSnapshot | None = None,
        customer: CustomerDetails | None = None,
        settings: EngineSettings = DEFAULT_SETTINGS,
        draft_store: DraftStore | None = None,
        id_factory: Callable[[], str] = _new_entry_id,
        session_id: str | None = None,
    ):
        if order is not None and order.is_settled:
            raise OrderSettledError(order.order_id)

        self._settings = settings
        self._order = order
        self._draft_store = draft_store
        self._id_factory = id_factory
        self._session_id = session_id

        service_catalog = dict(index_catalog(services))
        if order is not None:
            # Services on an existing order keep the price they were sold at.
            service_catalog.update({item.item_id: item for item in order.service_items})
        self._catalogs: dict[ItemKind, Mapping[str, CatalogItem]] = {
            ItemKind.PRODUCT: index_catalog(products),
            ItemKind.SERVICE: service_catalog,
        }

        self._selected: dict[ItemKind, list[str]] = {ItemKind.PRODUCT: [], ItemKind.SERVICE: []}
        self._quantities: dict[ItemKind, dict[str, str]] = {
            ItemKind.PRODUCT: {},
            ItemKind.SERVICE: {},
        }
        if order is not None:
            self._load_committed(ItemKind.PRODUCT, order.original_quantities)
            self._load_committed(ItemKind.SERVICE, order.service_quantities)

        self._payments: tuple[PaymentEntry, ...] = (
            new_payment_entry(self._id_factory(), settings),
        )
        self._errors: dict[str, FieldError] = {}
        self.customer = customer if customer is not None else (
            order.customer if order is not None else None
        )

    @classmethod
    def from_config(
        cls,
        products: Mapping[str, CatalogItem] | Iterable[CatalogItem],
        services: Mapping[str, CatalogItem] | Iterable[CatalogItem] = (),
        *,
        config_path: Path | None = None,
        **kwargs: Any,
    ) -> InvoiceEditor:
        """Editor using the settings of a YAML configuration set."""
        return cls(products, services, settings=get_active_config(config_path), **kwargs)

    def _load_committed(self, kind: ItemKind, committed: Mapping[str, int]) -> None:
        for item_id, quantity in committed.items():
            self._selected[kind].append(item_id)
            self._quantities[kind][item_id] = str(quantity)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def order_id(self) -> str | None:
        return self._order.order_id if self._order is not None else None

    @property
    def is_editing(self) -> bool:
        return self._order is not None

    @property
    def payments(self) -> tuple[PaymentEntry, ...]:
        return self._payments

    @property
    def previous_payments(self) -> tuple[PaymentEntry, ...]:
        return self._order.previous_payments if self._order is not None else ()

    @property
    def errors(self) -> dict[str, FieldError]:
        """Field errors currently shown on the form."""
        return dict(self._errors)

    def selected(self, kind: ItemKind = ItemKind.PRODUCT) -> tuple[str, ...]:
        return tuple(self._selected[kind])

    def quantity_text(self, item_id: str, kind: ItemKind = ItemKind.PRODUCT) -> str:
        return self._quantities[kind].get(item_id, "")

    def lines(self) -> tuple[OrderLine, ...]:
        """Resolved product lines followed by service lines."""
        committed = self._order.original_quantities if self._order is not None else None
        service_committed = self._order.service_quantities if self._order is not None else None
        return (
            resolve_lines(
                self._selected[ItemKind.PRODUCT],
                self._quantities[ItemKind.PRODUCT],
                self._catalogs[ItemKind.PRODUCT],
                committed,
                self._settings,
            )
            + resolve_lines(
                self._selected[ItemKind.SERVICE],
                self._quantities[ItemKind.SERVICE],
                self._catalogs[ItemKind.SERVICE],
                service_committed,
                self._settings,
            )
        )

    def grand_total(self) -> Decimal:
        charges = self._order.charges if self._order is not None else None
        return price_lines(self.lines(), charges, self._settings).grand_total

    def view(self) -> ReconciliationResult:
        """Totals, remaining balance and the current submit verdict."""
        return reconcile(
            self.lines(),
            self._payments,
            self.previous_payments,
            charges=self._order.charges if self._order is not None else None,
            customer=self.customer,
            settings=self._settings,
        )

    # ------------------------------------------------------------------
    # Item selection
    # ------------------------------------------------------------------

    def select(self, item_id: str, kind: ItemKind = ItemKind.PRODUCT) -> None:
        """Add an item to the order with quantity 1 (no-op if already selected)."""
        if item_id in self._selected[kind]:
            return
        self._selected[kind].append(item_id)
        self._quantities[kind].setdefault(item_id, "1")
        self._errors.pop(PRODUCTS_FIELD, None)
        logger.debug("item_selected", extra={"item_id": item_id, "kind": kind.value})
        self._changed()

    def deselect(self, item_id: str, kind: ItemKind = ItemKind.PRODUCT) -> None:
        if item_id not in self._selected[kind]:
            return
        self._selected[kind].remove(item_id)
        self._quantities[kind].pop(item_id, None)
        self._errors.pop(PRODUCTS_FIELD, None)
        self._changed()

    def set_quantity(
        self,
        item_id: str,
        text: str,
        kind: ItemKind = ItemKind.PRODUCT,
    ) -> None:
        """Store quantity text as typed; the resolver applies the quantity policy."""
        if item_id not in self._selected[kind]:
            self.select(item_id, kind)
        self._quantities[kind][item_id] = text
        self._errors.pop(PRODUCTS_FIELD, None)
        self._changed()

    def step(self, item_id: str, delta: int, kind: ItemKind = ItemKind.PRODUCT) -> int:
        """Apply a +/- stepper click and return the new quantity."""
        line = next(
            (ln for ln in self.lines() if ln.item_id == item_id and ln.kind is kind),
            None,
        )
        if line is None or not line.is_resolved:
            raise KeyError(item_id)
        quantity = step_quantity(line, delta)
        self.set_quantity(item_id, str(quantity), kind)
        return quantity

    # ------------------------------------------------------------------
    # Payment rows
    # ------------------------------------------------------------------

    def add_payment(self) -> str:
        """Append a fresh payment row and return its id."""
        entry_id = self._id_factory()
        self._payments = add_payment_row(self._payments, entry_id, self._settings)
        self._changed()
        return entry_id

    def remove_payment(self, entry_id: str) -> None:
        """Remove a row; the last row is reset instead of removed."""
        self._payments = remove_payment_row(
            self._payments, entry_id, self._id_factory(), self._settings
        )
        # Row positions shifted, so positional payment errors are stale.
        self._errors = {
            name: err for name, err in self._errors.items()
            if not name.startswith("payment")
        }
        self._changed()

    def set_payment_field(self, entry_id: str, field_name: str, value: str) -> None:
        """Apply one edit to a payment row.

        Amount edits are checked against the balance available to the row
        and may set or clear that row's amount error. Status edits derive
        the amount (``full``: available balance, ``partial``: 0) and clear
        the row's status and amount errors.
        """
        previous = self.previous_payments
        grand_total = self.grand_total()

        if field_name == "amount":
            entry = next((p for p in self._payments if p.entry_id == entry_id), None)
            if entry is None:
                raise PaymentEntryNotFoundError(entry_id)
            change = on_amount_change(
                entry, value, self._payments, grand_total, previous,
                self._errors, self._settings,
            )
            self._payments = tuple(
                change.entry if p.entry_id == entry_id else p for p in self._payments
            )
            self._errors = dict(change.errors)
            self._errors.pop(PAYMENT_TOTAL_FIELD, None)
        else:
            self._payments = update_payment_field(
                self._payments, entry_id, field_name, value, grand_total,
                previous, self._settings,
            )
            if field_name == "status":
                index = next(
                    i for i, p in enumerate(self._payments) if p.entry_id == entry_id
                )
                self._errors.pop(payment_status_field(index), None)
                if self._payments[index].amount.strip():
                    self._errors.pop(payment_amount_field(index), None)
                self._errors.pop(PAYMENT_TOTAL_FIELD, None)
        self._changed()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self) -> SubmissionOutcome:
        """Validate the form and build the order payload when it passes.

        On rejection the form's errors are replaced by the full set of
        submit-time errors. On acceptance the draft is discarded.
        """
        with LogContext.bind(order_id=self.order_id, session_id=self._session_id):
            result = self.view()
            if not result.is_valid:
                self._errors = dict(result.validation.errors)
                logger.info("invoice_submission_rejected", extra={
                    "error_codes": result.validation.codes(),
                })
                return SubmissionOutcome(result=result)

            payload = build_order_payload(
                result.lines,
                result.pricing,
                self._payments,
                original_quantities=(
                    self._order.original_quantities if self._order is not None else None
                ),
                customer=self.customer,
                settings=self._settings,
            )
            self._errors = {}
            self.discard_draft()
            logger.info("invoice_submission_accepted", extra={
                "editing": self.is_editing,
                "grand_total": str(result.grand_total),
                "payment_total": str(payload_amounts(payload)),
                "includes_items": "items" in payload,
            })
            return SubmissionOutcome(result=result, payload=payload)

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    @property
    def draft_key(self) -> str:
        return draft_key(self.order_id)

    def to_draft(self) -> InvoiceDraft:
        return InvoiceDraft(
            selected_products=self.selected(ItemKind.PRODUCT),
            product_quantities=dict(self._quantities[ItemKind.PRODUCT]),
            selected_services=self.selected(ItemKind.SERVICE),
            service_quantities=dict(self._quantities[ItemKind.SERVICE]),
            payments=self._payments,
            customer=self.customer,
        )

    def save_draft(self) -> None:
        if self._draft_store is None:
            return
        self._draft_store.set(self.draft_key, encode_draft(self.to_draft()))

    def restore_draft(self) -> bool:
        """Load the saved draft for this form, if any.

        Returns:
            True when a draft was applied. A draft that cannot be decoded
            is discarded and False is returned.
        """
        if self._draft_store is None:
            return False
        text = self._draft_store.get(self.draft_key)
        if text is None:
            return False
        try:
            draft = decode_draft(self.draft_key, text)
        except DraftDecodeError as exc:
            logger.warning("draft_discarded", extra={
                "draft_key": exc.key,
                "reason": exc.reason,
            })
            self._draft_store.delete(self.draft_key)
            return False

        self._selected = {
            ItemKind.PRODUCT: list(draft.selected_products),
            ItemKind.SERVICE: list(draft.selected_services),
        }
        self._quantities = {
            ItemKind.PRODUCT: dict(draft.product_quantities),
            ItemKind.SERVICE: dict(draft.service_quantities),
        }
        if draft.payments:
            self._payments = draft.payments
        if draft.customer is not None:
            self.customer = draft.customer
        self._errors = {}
        logger.debug("draft_restored", extra={"draft_key": self.draft_key})
        return True

    def discard_draft(self) -> None:
        if self._draft_store is not None:
            self._draft_store.delete(self.draft_key)

    def set_customer(self, customer: CustomerDetails) -> None:
        self.customer = customer
        for name in ("firstName", "lastName", "phone", "email"):
            self._errors.pop(name, None)
        self._changed()

    def _changed(self) -> None:
        self.save_draft()
