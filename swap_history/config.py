import os


class Config:
    """
    Simple configuration loader.  This class reads environment variables
    for the ledger RPC endpoint and the retrieval policy used by the swap
    history service.  If an environment variable is not provided the
    default shown here is used.  You can override these values at runtime
    by defining the environment variables before starting the service.
    """
    SOLANA_RPC_URL: str = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
    RPC_TIMEOUT: float = float(os.getenv("RPC_TIMEOUT", "20"))
    RPC_COMMITMENT: str = os.getenv("RPC_COMMITMENT", "confirmed")

    # Retrieval policy.  The exact numbers are tunable; the detail batch
    # sizes only need to stay within what the RPC node accepts per batch.
    SIGNATURE_PAGE_SIZE: int = int(os.getenv("SIGNATURE_PAGE_SIZE", "100"))
    TRANSACTION_BATCH_SIZE: int = int(os.getenv("TRANSACTION_BATCH_SIZE", "50"))
    BELOW_MIN_SLOT_BATCH_SIZE: int = int(os.getenv("BELOW_MIN_SLOT_BATCH_SIZE", "10"))
    MAX_CONCURRENT_REQUESTS: int = int(os.getenv("MAX_CONCURRENT_REQUESTS", "4"))
    DEFAULT_SWAP_LIMIT: int = int(os.getenv("DEFAULT_SWAP_LIMIT", "20"))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_REQUESTS: bool = os.getenv("LOG_REQUESTS", "true").lower() == "true"
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
