"""
Canonical swap records and the venues they are decoded from.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Venue(str, Enum):
    """Swap programs whose transactions can be decoded."""
    SERUM = "Serum"
    ORCA = "Orca"


SERUM_SWAP_PROGRAM_ID = "SwaPpA9LAaLfeLi3a68M4DjnLqgtticKg6CnyNwgAC8"
ORCA_SWAP_PROGRAM_ID = "DjVE6JNiYqPL2QXyCUUh8rNjHrbz9hXHNYt99MQ59qw1"

PROGRAM_VENUES: Dict[str, Venue] = {
    SERUM_SWAP_PROGRAM_ID: Venue.SERUM,
    ORCA_SWAP_PROGRAM_ID: Venue.ORCA,
}
VENUE_PROGRAM_IDS: Dict[Venue, str] = {venue: program_id for program_id, venue in PROGRAM_VENUES.items()}
TRACKED_PROGRAM_IDS: FrozenSet[str] = frozenset(PROGRAM_VENUES)


class TransferLeg(BaseModel):
    """One token transfer taken from an instruction trace."""
    source: str = Field(..., description="Source token account", min_length=1)
    destination: str = Field(..., description="Destination token account", min_length=1)
    amount: str = Field(..., description="Amount in native base units", pattern=r"^\d+$")

    model_config = ConfigDict(frozen=True)


class SwapRecord(BaseModel):
    """A decoded swap: one outbound and one inbound transfer."""
    signature: str = Field(..., description="Transaction signature", min_length=1)
    venue: Venue = Field(..., description="Swap program that produced the transaction")
    kind: Literal["swap"] = Field("swap", description="Record kind")
    timestamp: Optional[datetime] = Field(None, description="Block time, if known")
    from_source: str = Field(..., description="Source account of the outbound leg", min_length=1)
    from_destination: str = Field(..., description="Destination account of the outbound leg", min_length=1)
    from_amount: str = Field(..., description="Outbound amount in native base units", pattern=r"^\d+$")
    to_source: str = Field(..., description="Source account of the inbound leg", min_length=1)
    to_destination: str = Field(..., description="Destination account of the inbound leg", min_length=1)
    to_amount: str = Field(..., description="Inbound amount in native base units", pattern=r"^\d+$")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "signature": "5h6xBEauJ3PK6SWCZ1PGjBvj8vDdWG3KpwATGy1ARAXFSDwt8GFXM7W5Ncn16wmqokgpiKRLuS83KUxyZyv2sUYv",
                "venue": "Orca",
                "kind": "swap",
                "timestamp": "2021-03-04T18:20:11Z",
                "from_source": "7ZAKSkbyxyTVgsykgMeoFeGqKtUYVvVHAP1ZU8ZMbg2J",
                "from_destination": "9vYWHBPz817wJdQpE8u3h8UoY3sZ16ZXdCcvLB7jY4Dj",
                "from_amount": "1000000",
                "to_source": "6YvTn1nQqeAHRpGXy5q6DjBMrvRYYwTTMLh6FVrJ3ZDx",
                "to_destination": "4FqnFs8xP6dYNzo8Sj7qzsxiQ9HoqbpWHFPMzqhd3NRR",
                "to_amount": "5893",
            }
        },
    )

    @classmethod
    def from_legs(
        cls,
        signature: str,
        venue: Venue,
        block_time: Optional[int],
        outbound: TransferLeg,
        inbound: TransferLeg,
    ) -> "SwapRecord":
        timestamp = datetime.fromtimestamp(block_time, tz=timezone.utc) if block_time is not None else None
        return cls(
            signature=signature,
            venue=venue,
            timestamp=timestamp,
            from_source=outbound.source,
            from_destination=outbound.destination,
            from_amount=outbound.amount,
            to_source=inbound.source,
            to_destination=inbound.destination,
            to_amount=inbound.amount,
        )

    @property
    def addresses(self) -> List[str]:
        return [self.from_source, self.from_destination, self.to_source, self.to_destination]
