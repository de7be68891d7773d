from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional

from .swaps import SwapRecord


class TokenAccountInfo(BaseModel):
    """Mint and balance metadata for a token account referenced by a swap."""
    address: str = Field(..., description="Token account address", min_length=1)
    mint: str = Field(..., description="Mint of the token held by the account", min_length=1)
    owner: str = Field(..., description="Wallet that owns the token account", min_length=1)
    amount: str = Field(..., description="Raw token balance as string", pattern=r"^\d+$")
    decimals: int = Field(..., description="Number of decimal places of the mint", ge=0, le=255)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "address": "7ZAKSkbyxyTVgsykgMeoFeGqKtUYVvVHAP1ZU8ZMbg2J",
                "mint": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
                "owner": "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM",
                "amount": "1000000000",
                "decimals": 6
            }
        }
    )


class SwapHistoryResponse(BaseModel):
    """Response model for the swaps endpoint."""
    wallet_address: str = Field(..., description="Wallet address queried", min_length=1)
    swaps: List[SwapRecord] = Field(default_factory=list, description="Decoded swaps, newest first")
    next_before: Optional[str] = Field(
        None, description="Cursor for the next page; absent when no older swaps remain"
    )
    skipped_signatures: List[str] = Field(
        default_factory=list, description="Signatures that matched a swap program but could not be decoded"
    )
    accounts: List[TokenAccountInfo] = Field(
        default_factory=list, description="Token accounts referenced by the returned swaps"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "wallet_address": "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM",
                "swaps": [SwapRecord.model_config["json_schema_extra"]["example"]],
                "next_before": None,
                "skipped_signatures": [],
                "accounts": [TokenAccountInfo.model_config["json_schema_extra"]["example"]]
            }
        }
    )


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message")
    error_code: str = Field(..., description="Error code")
    details: Optional[str] = Field(None, description="Additional error details")
    signature: Optional[str] = Field(None, description="Offending transaction signature, for decode errors")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Serum swap is missing its inner token transfers",
                "error_code": "DECODE_ERROR",
                "details": "Expected two token transfers, found 1",
                "signature": "5h6xBEauJ3PK6SWCZ1PGjBvj8vDdWG3KpwATGy1ARAXFSDwt8GFXM7W5Ncn16wmqokgpiKRLuS83KUxyZyv2sUYv"
            }
        }
    )
