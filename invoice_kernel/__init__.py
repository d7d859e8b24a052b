"""
Invoice Kernel

Pure pricing and payment-reconciliation core for the admin dashboard:
- Catalog snapshot resolution with stock grandfathering
- Decimal-safe subtotal and grand total calculation
- Payment reconciliation across previous and in-progress payments
- Structured, field-keyed validation results
"""

__version__ = "0.1.0"
