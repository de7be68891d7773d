# swap_history/models/__init__.py
from .ledger import (
    SignatureInfo,
    ParsedInstruction,
    InnerInstructionGroup,
    RawTransaction,
    PageState,
)
from .swaps import (
    Venue,
    TransferLeg,
    SwapRecord,
    SERUM_SWAP_PROGRAM_ID,
    ORCA_SWAP_PROGRAM_ID,
    PROGRAM_VENUES,
    TRACKED_PROGRAM_IDS,
)
from .responses import (
    TokenAccountInfo,
    SwapHistoryResponse,
    ErrorResponse,
)

__all__ = [
    "SignatureInfo",
    "ParsedInstruction",
    "InnerInstructionGroup",
    "RawTransaction",
    "PageState",
    "Venue",
    "TransferLeg",
    "SwapRecord",
    "SERUM_SWAP_PROGRAM_ID",
    "ORCA_SWAP_PROGRAM_ID",
    "PROGRAM_VENUES",
    "TRACKED_PROGRAM_IDS",
    "TokenAccountInfo",
    "SwapHistoryResponse",
    "ErrorResponse",
]
