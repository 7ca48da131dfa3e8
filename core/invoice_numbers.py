"""
Invoice number generation.

Format: {PREFIX}-YYYYMMDD-NNNNNN, e.g. INV-20260119-000042. The numeric part
comes from a single database sequence, so two concurrent creations can never
draw the same value; the date only makes numbers easier to read.
"""

import logging

from core.config import InvoiceConfig
from core.invoice_store import InvoiceStore
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class InvoiceNumberGenerator:
    """Produces a new, collision-free invoice number per call."""

    def __init__(self, store: InvoiceStore, config: InvoiceConfig | None = None):
        self.store = store
        self.config = config or InvoiceConfig()

    def generate(self) -> str:
        """
        Draw the next invoice number.

        Raises:
            InvoiceNumberGenerationError: If the sequence is unavailable
        """
        sequence = self.store.next_invoice_sequence()
        today = now_utc().strftime("%Y%m%d")
        return f"{self.config.number_prefix}-{today}-{sequence:06d}"
