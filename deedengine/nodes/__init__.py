from .parcel_node import ParcelNode
from .transaction_node import TransactionNode
from .locator_node import LocatorNode
from .capture_node import CaptureNode
from .verify_node import VerifyNode
from .assembler_node import AssemblerNode
from .finalize_node import FinalizeNode

__all__ = [
    "ParcelNode",
    "TransactionNode",
    "LocatorNode",
    "CaptureNode",
    "VerifyNode",
    "AssemblerNode",
    "FinalizeNode",
]
