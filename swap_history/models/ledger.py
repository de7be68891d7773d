"""
Models for the ledger records consumed by the swap history pipeline.

A ``RawTransaction`` keeps the instruction trace as an explicit two-level
structure: the ordered top-level instructions of the message, and the inner
instruction groups keyed by the index of the top-level instruction that
produced them.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_PROGRAM_NAME = "spl-token"


class SignatureInfo(BaseModel):
    """One entry of a signature listing, newest first."""
    signature: str = Field(..., description="Transaction signature", min_length=1)
    slot: int = Field(..., description="Slot the transaction was confirmed in", ge=0)
    err: Optional[Any] = Field(None, description="Error marker, non-null when the transaction failed")
    block_time: Optional[int] = Field(None, alias="blockTime", description="Unix timestamp of the block")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @property
    def failed(self) -> bool:
        return self.err is not None


class ParsedInstruction(BaseModel):
    """A single instruction as returned by the ``jsonParsed`` encoding."""
    program_id: str = Field(..., alias="programId", description="Program invoked by the instruction", min_length=1)
    program: Optional[str] = Field(None, description="Parser name, e.g. spl-token")
    parsed: Optional[Any] = Field(None, description="Parsed payload, usually {type, info}")

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    @property
    def instruction_type(self) -> Optional[str]:
        if isinstance(self.parsed, dict):
            return self.parsed.get("type")
        return None

    @property
    def info(self) -> Dict[str, Any]:
        if isinstance(self.parsed, dict) and isinstance(self.parsed.get("info"), dict):
            return self.parsed["info"]
        return {}

    @property
    def is_token_transfer(self) -> bool:
        """True for SPL token ``transfer`` instructions."""
        is_token_program = self.program == TOKEN_PROGRAM_NAME or self.program_id == TOKEN_PROGRAM_ID
        return is_token_program and self.instruction_type == "transfer"


class InnerInstructionGroup(BaseModel):
    """Instructions emitted while executing the top-level instruction at ``index``."""
    index: int = Field(..., description="Index of the parent top-level instruction", ge=0)
    instructions: List[ParsedInstruction] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")


class RawTransaction(BaseModel):
    """A confirmed ledger transaction. Read-only once retrieved."""
    signatures: List[str] = Field(..., description="Transaction signatures, the first is canonical", min_length=1)
    slot: int = Field(0, description="Slot the transaction was confirmed in", ge=0)
    block_time: Optional[int] = Field(None, description="Unix timestamp of the block")
    err: Optional[Any] = Field(None, description="Error marker, non-null when the transaction failed")
    instructions: List[ParsedInstruction] = Field(default_factory=list, description="Top-level instructions")
    inner_instructions: Optional[List[InnerInstructionGroup]] = Field(
        None, description="Inner instruction groups tagged with their parent index"
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_rpc(cls, payload: Dict[str, Any]) -> "RawTransaction":
        """Build a transaction from a ``getTransaction`` result in ``jsonParsed`` encoding."""
        meta = payload.get("meta") or {}
        transaction = payload.get("transaction") or {}
        message = transaction.get("message") or {}
        inner = meta.get("innerInstructions")
        return cls(
            signatures=transaction.get("signatures") or [],
            slot=payload.get("slot") or 0,
            block_time=payload.get("blockTime"),
            err=meta.get("err"),
            instructions=[ParsedInstruction.model_validate(ix) for ix in message.get("instructions") or []],
            inner_instructions=(
                [InnerInstructionGroup.model_validate(group) for group in inner] if inner is not None else None
            ),
        )

    @property
    def signature(self) -> str:
        return self.signatures[0]

    @property
    def failed(self) -> bool:
        return self.err is not None

    @property
    def program_ids(self) -> List[str]:
        return [ix.program_id for ix in self.instructions]

    def references_any(self, program_ids: Iterable[str]) -> bool:
        """Whether any top-level instruction invokes one of ``program_ids``."""
        wanted = set(program_ids)
        return any(ix.program_id in wanted for ix in self.instructions)

    def inner_group(self, index: int) -> Optional[InnerInstructionGroup]:
        for group in self.inner_instructions or []:
            if group.index == index:
                return group
        return None

    def flattened_inner_instructions(self) -> List[ParsedInstruction]:
        """All inner instructions, ordered by parent index then by position."""
        groups = sorted(self.inner_instructions or [], key=lambda group: group.index)
        return [ix for group in groups for ix in group.instructions]


@dataclass
class PageState:
    """Cursor state carried between retrieval rounds of a single fetch call."""
    before: Optional[str] = None
    accumulated: List[RawTransaction] = field(default_factory=list)
    first_round_size: int = 0
    rounds: int = 0

    def record_round(self, listed: int) -> None:
        if self.rounds == 0:
            self.first_round_size = listed
        self.rounds += 1
