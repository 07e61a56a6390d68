"""
Parcel Payment Status Enumeration.
"""

import enum


class PaymentStatus(str, enum.Enum):
    """
    Parcel payment status enumeration.

    Status flow:
        UNPAID → PAID
        A paid parcel never reverts.
    """
    UNPAID = "Unpaid"
    PAID = "Paid"
