"""
Decoding of swap transactions into canonical ``SwapRecord`` entries.

Each venue places its token transfers in a different part of the
instruction trace:

* Serum: the inner instruction group produced by the Serum swap instruction
  holds the two transfers, outbound first and inbound second.
* Orca: routing can span several top-level instructions, so every inner
  group is flattened; the first transfer is the outbound leg and the last
  one the inbound leg.  Intermediate hops are not recorded.
"""
import logging
from typing import Callable, Dict, List

from pydantic import ValidationError

from swap_history.models.ledger import ParsedInstruction, RawTransaction
from swap_history.models.swaps import PROGRAM_VENUES, VENUE_PROGRAM_IDS, SwapRecord, TransferLeg, Venue
from swap_history.services.errors import DecodeError

logger = logging.getLogger(__name__)


def _transfer_leg(transaction: RawTransaction, instruction: ParsedInstruction, venue: Venue) -> TransferLeg:
    info = instruction.info
    try:
        return TransferLeg(
            source=info.get("source"),
            destination=info.get("destination"),
            amount=info.get("amount"),
        )
    except ValidationError as e:
        raise DecodeError(
            transaction.signature, f"{venue.value} swap has a malformed token transfer: {e}", venue=venue.value
        ) from e


def _token_transfers(instructions: List[ParsedInstruction]) -> List[ParsedInstruction]:
    return [ix for ix in instructions if ix.is_token_transfer]


def decode_serum(transaction: RawTransaction) -> SwapRecord:
    program_id = VENUE_PROGRAM_IDS[Venue.SERUM]
    index = next(
        (i for i, ix in enumerate(transaction.instructions) if ix.program_id == program_id),
        None,
    )
    if index is None:
        raise DecodeError(transaction.signature, "Transaction has no Serum swap instruction", venue=Venue.SERUM.value)

    group = transaction.inner_group(index)
    if group is None:
        raise DecodeError(
            transaction.signature, "Missing inner instructions for Serum swap", venue=Venue.SERUM.value
        )

    transfers = _token_transfers(group.instructions)
    if len(transfers) < 2:
        raise DecodeError(
            transaction.signature,
            f"Serum swap needs two token transfers, found {len(transfers)}",
            venue=Venue.SERUM.value,
        )
    if len(transfers) > 2:
        logger.debug(f"Serum swap {transaction.signature} has {len(transfers)} transfers, using the first two")

    outbound = _transfer_leg(transaction, transfers[0], Venue.SERUM)
    inbound = _transfer_leg(transaction, transfers[1], Venue.SERUM)
    return SwapRecord.from_legs(transaction.signature, Venue.SERUM, transaction.block_time, outbound, inbound)


def decode_orca(transaction: RawTransaction) -> SwapRecord:
    transfers = _token_transfers(transaction.flattened_inner_instructions())
    if not transfers:
        raise DecodeError(
            transaction.signature, "Missing token transfers for Orca swap", venue=Venue.ORCA.value
        )

    outbound = _transfer_leg(transaction, transfers[0], Venue.ORCA)
    inbound = _transfer_leg(transaction, transfers[-1], Venue.ORCA)
    return SwapRecord.from_legs(transaction.signature, Venue.ORCA, transaction.block_time, outbound, inbound)


DECODERS: Dict[Venue, Callable[[RawTransaction], SwapRecord]] = {
    Venue.SERUM: decode_serum,
    Venue.ORCA: decode_orca,
}


def decode(transaction: RawTransaction, venue: Venue) -> SwapRecord:
    """Decode ``transaction`` with the rule of ``venue``.

    Raises:
        DecodeError: The expected instruction shape is absent or malformed.
    """
    try:
        decoder = DECODERS[Venue(venue)]
    except (KeyError, ValueError):
        raise DecodeError(transaction.signature, f"No decoder for venue {venue!r}") from None
    return decoder(transaction)


def detect_venue(transaction: RawTransaction) -> Venue:
    """The venue of the first top-level instruction invoking a tracked program."""
    for ix in transaction.instructions:
        venue = PROGRAM_VENUES.get(ix.program_id)
        if venue is not None:
            return venue
    raise DecodeError(transaction.signature, "Transaction does not invoke a tracked swap program")


def decode_swap(transaction: RawTransaction) -> SwapRecord:
    return decode(transaction, detect_venue(transaction))
